"""
e-doğrula: management commands.
"""

import shutil
import tempfile
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock, patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from directory.models import Blacklist, Business, UserProfile
from directory.services.google_places import DETAILS_URL, TEXT_SEARCH_URL, PlacesClient, PlacesError

from .helpers import png_bytes

User = get_user_model()


def run(*args, **kwargs):
    out = StringIO()
    call_command(*args, stdout=out, **kwargs)
    return out.getvalue()


class AccountCommandTests(TestCase):

    def test_create_admin(self):
        output = run('create_admin', email='Admin@Edogrula.org', password='supersecret', name='Site Yöneticisi')
        self.assertIn('Created admin admin@edogrula.org', output)
        user = User.objects.get(email='admin@edogrula.org')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.check_password('supersecret'))
        self.assertEqual((user.first_name, user.last_name), ('Site', 'Yöneticisi'))
        self.assertEqual(UserProfile.objects.get(user=user).role, 'admin')

    def test_create_admin_promotes_existing(self):
        user = User.objects.create_user(username='ayse', email='ayse@example.com', password='x' * 10)
        output = run('create_admin', email='ayse@example.com', password='newsecret1')
        self.assertIn('Promoted admin', output)
        self.assertEqual(User.objects.count(), 1)
        user.refresh_from_db()
        self.assertTrue(user.is_staff)

    def test_create_admin_validation(self):
        with self.assertRaises(CommandError):
            run('create_admin', email='not-an-email', password='supersecret')
        with self.assertRaises(CommandError):
            run('create_admin', email='a@example.com', password='short')

    def test_reset_password_unlocks(self):
        user = User.objects.create_user(username='ayse', email='ayse@example.com', password='oldsecret1')
        profile = UserProfile.for_user(user)
        profile.mark_login_failure(max_attempts=1)
        self.assertTrue(profile.is_locked)

        output = run('reset_password', email='AYSE@example.com', password='newsecret1')
        self.assertIn('Password updated for ayse@example.com', output)
        user.refresh_from_db()
        self.assertTrue(user.check_password('newsecret1'))
        profile.refresh_from_db()
        self.assertFalse(profile.is_locked)

    def test_reset_password_unknown_user(self):
        with self.assertRaises(CommandError):
            run('reset_password', email='nobody@example.com', password='newsecret1')


class ExportBusinessesCommandTests(TestCase):

    def setUp(self):
        Business.objects.create(name='Kule Bungalov', phone='0532 111 22 33')
        Business.objects.create(name='Sahte Otel', phone='0532 999 88 77')
        Business.objects.create(name='Sahte Pansiyon', instagram_username='sahte.pansiyon')
        Blacklist.objects.create(name='Sahte Otel', phone='+90 532 999 88 77')
        Blacklist.objects.create(name='Sahte Pansiyon', instagram_username='@Sahte.Pansiyon')
        Blacklist.objects.create(name='Eski kayıt', phone='0532 111 22 33', status='removed')

    def test_skips_blacklisted(self):
        output = run('export_businesses')
        self.assertIn('"Kule Bungalov"', output)
        self.assertNotIn('Sahte Otel', output)
        self.assertNotIn('Sahte Pansiyon', output)

    def test_include_blacklisted_to_file(self):
        target = Path(tempfile.mkdtemp()) / 'out.csv'
        try:
            output = run('export_businesses', output=str(target), include_blacklisted=True)
            self.assertIn('Exported 3 business(es)', output)
            text = target.read_text(encoding='utf-8')
            self.assertTrue(text.startswith('\ufeff"_id";"id";"name"'))
            self.assertIn('"Sahte Otel"', text)
        finally:
            shutil.rmtree(target.parent, ignore_errors=True)


class FixPhonesCommandTests(TestCase):

    def test_normalizes_legacy_rows(self):
        business = Business.objects.create(name='Kule', phone='0532 111 22 33')
        # simulate a row written before normalization existed
        Business.objects.filter(pk=business.pk).update(phone='0532 111 22 33')

        output = run('fix_phones', dry_run=True)
        self.assertIn('Would update 1 phone(s)', output)
        business.refresh_from_db()
        self.assertEqual(business.phone, '0532 111 22 33')

        output = run('fix_phones')
        self.assertIn('Updated 1 phone(s), 0 conflict(s)', output)
        business.refresh_from_db()
        self.assertEqual(business.phone, '+905321112233')

        self.assertIn('All phone numbers already normalized.', run('fix_phones'))

    def test_conflict_is_reported(self):
        Business.objects.create(name='Kule', phone='0532 111 22 33')
        other = Business.objects.create(name='Göl', phone='0532 111 22 44')
        Business.objects.filter(pk=other.pk).update(phone='05321112233')
        output = run('fix_phones')
        self.assertIn('already used by another business', output)
        self.assertIn('0 phone(s), 1 conflict(s)', output)


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def places_session(search_results, details):
    session = MagicMock()

    def fake_get(url, params=None, timeout=None):
        if url == TEXT_SEARCH_URL:
            return _response({'status': 'OK' if search_results else 'ZERO_RESULTS', 'results': search_results})
        if url == DETAILS_URL:
            return _response({'status': 'OK', 'result': details})
        raise AssertionError(url)

    session.get.side_effect = fake_get
    return session


@override_settings(GOOGLE_PLACES_API_KEY='test-key')
class GooglePlacesTests(TestCase):

    DETAILS = {
        'international_phone_number': '+90 264 582 10 10',
        'website': 'http://kulebungalov.com/',
        'formatted_address': 'Kırkpınar, Sapanca/Sakarya',
        'url': 'https://maps.google.com/?cid=1',
        'rating': 4.7,
        'user_ratings_total': 120,
    }

    @override_settings(GOOGLE_PLACES_API_KEY='')
    def test_client_requires_key(self):
        with self.assertRaises(PlacesError):
            PlacesClient(session=MagicMock())

    def test_error_status_raises(self):
        session = MagicMock()
        session.get.return_value = _response({'status': 'REQUEST_DENIED', 'error_message': 'bad key'})
        client = PlacesClient(session=session)
        with self.assertRaises(PlacesError) as ctx:
            client.search('Kule')
        self.assertIn('REQUEST_DENIED', str(ctx.exception))

    @patch('directory.services.google_places._create_session')
    def test_enrich_command_fills_blank_fields(self, create_session):
        create_session.return_value = places_session([{'place_id': 'abc'}], self.DETAILS)
        business = Business.objects.create(name='Kule Bungalov', website='https://kule.example')
        Business.objects.create(name='Tam Kayıt', phone='0532 111 22 33', website='https://tam.example')

        output = run('enrich_businesses_google')
        self.assertIn('Matched 1, updated 1, failed 0.', output)
        business.refresh_from_db()
        self.assertEqual(business.phone, '+902645821010')
        self.assertEqual(business.website, 'https://kule.example')
        self.assertEqual(business.address, 'Kırkpınar, Sapanca/Sakarya')
        self.assertEqual(business.google_place_id, 'abc')
        self.assertEqual(business.google_rating, 4.7)
        self.assertEqual(business.google['mapsUrl'], 'https://maps.google.com/?cid=1')

    @patch('directory.services.google_places._create_session')
    def test_enrich_dry_run_and_no_match(self, create_session):
        create_session.return_value = places_session([], {})
        business = Business.objects.create(name='Bilinmeyen')
        output = run('enrich_businesses_google', dry_run=True)
        self.assertIn('Bilinmeyen: no match', output)
        self.assertIn('[dry-run] Matched 0, updated 0, failed 0.', output)
        business.refresh_from_db()
        self.assertEqual(business.google_place_id, '')

    @override_settings(GOOGLE_PLACES_API_KEY='')
    def test_enrich_command_without_key(self):
        with self.assertRaises(CommandError):
            run('enrich_businesses_google')


@override_settings(
    R2_ACCOUNT_ID='acc', R2_ACCESS_KEY_ID='key', R2_SECRET_ACCESS_KEY='secret',
    R2_BUCKET_NAME='photos', R2_PUBLIC_BASE_URL='https://cdn.example.com',
)
class UploadPhotosR2CommandTests(TestCase):

    def setUp(self):
        self.source = Path(tempfile.mkdtemp())
        folder = self.source / 'kule-bungalov'
        folder.mkdir()
        (folder / 'a.png').write_bytes(png_bytes())
        (folder / 'notes.txt').write_text('skip me')
        self.business = Business.objects.create(name='Kule Bungalov', gallery=['https://cdn.example.com/old.webp'])

    def tearDown(self):
        shutil.rmtree(self.source, ignore_errors=True)

    @patch('directory.services.r2.boto3.client')
    def test_upload_and_link(self, boto_client):
        s3 = MagicMock()
        boto_client.return_value = s3

        output = run('upload_business_photos_r2', source=str(self.source), link=True)
        self.assertIn('Uploaded 1, failed 0, linked 1 business(es).', output)

        boto_client.assert_called_once()
        self.assertEqual(boto_client.call_args.kwargs['endpoint_url'], 'https://acc.r2.cloudflarestorage.com')
        args, kwargs = s3.upload_file.call_args
        self.assertEqual(args[1:], ('photos', 'business_photos/kule-bungalov/a.png'))
        self.assertEqual(kwargs['ExtraArgs']['ContentType'], 'image/png')

        self.business.refresh_from_db()
        self.assertEqual(self.business.gallery, [
            'https://cdn.example.com/old.webp',
            'https://cdn.example.com/business_photos/kule-bungalov/a.png',
        ])

    @patch('directory.services.r2.boto3.client')
    def test_dry_run_does_not_connect(self, boto_client):
        output = run('upload_business_photos_r2', source=str(self.source), dry_run=True)
        self.assertIn('[dry-run] 1 file(s) in 1 folder(s).', output)
        boto_client.assert_not_called()

    @override_settings(R2_BUCKET_NAME='')
    def test_missing_config(self):
        with self.assertRaises(CommandError):
            run('upload_business_photos_r2', source=str(self.source))

    def test_missing_source(self):
        with self.assertRaises(CommandError):
            run('upload_business_photos_r2', source=str(self.source / 'nope'))

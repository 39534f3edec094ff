"""
e-doğrula: business search, public lookups and the admin business API.
"""

import shutil
import tempfile
from pathlib import Path

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from directory.models import Blacklist, Business
from directory.services import businesses as svc

from .helpers import admin_headers, png_upload


class BusinessSearchTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = Client()
        self.business = Business.objects.create(
            name='Kule Bungalov', instagram_username='kule.bungalov', phone='0532 111 22 33',
            website='kulebungalov.com', verified=True, status='approved',
        )

    def search(self, q, **params):
        return self.client.get(reverse('business_search'), {'q': q, **params}).json()

    def test_instagram_username(self):
        data = self.search('@kule.bungalov')
        self.assertEqual(data['status'], 'verified')
        self.assertEqual(data['business']['id'], str(self.business.pk))

    def test_instagram_link(self):
        data = self.search('https://www.instagram.com/kule.bungalov/')
        self.assertEqual(data['status'], 'verified')

    def test_phone_with_different_formatting(self):
        data = self.search('+90 (532) 111-22-33')
        self.assertEqual(data['status'], 'verified')
        self.assertEqual(data['businesses'][0]['phone'], '+905321112233')

    def test_website(self):
        self.assertEqual(self.search('https://kulebungalov.com/rezervasyon', type='website')['status'], 'verified')

    def test_not_found_and_empty(self):
        self.assertEqual(self.search('zzzz-nothing')['status'], 'not_found')
        data = self.search('')
        self.assertEqual(data['status'], 'not_found')
        self.assertEqual(data['reason'], 'empty')

    def test_blacklist_wins_over_business(self):
        Blacklist.objects.create(name='Kule Sahte', instagram_username='@kule.bungalov', status='active')
        data = self.search('@kule.bungalov')
        self.assertEqual(data['status'], 'blacklist')
        self.assertEqual(data['business']['instagramUsername'], 'kule.bungalov')

    def test_removed_or_deleted_blacklist_ignored(self):
        Blacklist.objects.create(name='Eski', instagram_username='kule.bungalov', status='removed')
        Blacklist.objects.create(name='Silinmiş', instagram_username='kule.bungalov', is_deleted=True)
        self.assertEqual(self.search('@kule.bungalov')['status'], 'verified')

    def test_results_are_cached(self):
        self.assertEqual(self.search('göl evi')['status'], 'not_found')
        Business.objects.create(name='Göl Evi', phone='0532 123 45 67')
        self.assertEqual(self.search('göl evi')['status'], 'not_found')
        cache.clear()
        self.assertEqual(self.search('göl evi')['status'], 'verified')

    def test_limit_is_clamped(self):
        self.assertEqual(svc.parse_search_limit('500'), 25)
        self.assertEqual(svc.parse_search_limit('0'), 1)
        self.assertEqual(svc.parse_search_limit('abc'), 10)


class PublicBusinessLookupTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.business = Business.objects.create(
            name='Kule Bungalov', instagram_username='kule.bungalov',
            gallery=['/defaults/edogrula-default.webp', 'uploads/kule/a.webp'],
        )

    def test_by_slug(self):
        response = self.client.get(reverse('business_by_slug', args=['Kule-Bungalov']))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['business']['slug'], 'kule-bungalov')

    def test_by_slug_missing(self):
        response = self.client.get(reverse('business_by_slug', args=['yok']))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'success': True, 'status': 'not_found'})

    def test_by_handle(self):
        response = self.client.get(reverse('business_by_handle', args=['@Kule.Bungalov']))
        self.assertEqual(response.json()['business']['id'], str(self.business.pk))

    def test_detail_by_id_slug_or_handle(self):
        for key in (str(self.business.pk), 'kule-bungalov', 'kule.bungalov'):
            response = self.client.get(reverse('business_public_detail', args=[key]))
            self.assertEqual(response.json()['status'], 'verified', key)

    @override_settings(FILE_BASE_URL='https://cdn.example.com', R2_PUBLIC_BASE_URL='')
    def test_gallery_urls_absolute_and_placeholder_dropped(self):
        business = self.client.get(reverse('business_by_slug', args=['kule-bungalov'])).json()['business']
        self.assertEqual(business['gallery'], ['https://cdn.example.com/uploads/kule/a.webp'])
        self.assertEqual(business['photo'], 'https://cdn.example.com/uploads/kule/a.webp')

    def test_detail_falls_back_to_blacklist_id(self):
        Business.objects.all().delete()
        black = Blacklist.objects.create(name='Sahte Otel', phone='0532 999 88 77')
        data = self.client.get(reverse('business_public_detail', args=[str(black.pk)])).json()
        self.assertEqual(data['status'], 'blacklist')
        self.assertEqual(data['business']['name'], 'Sahte Otel')

    def test_detail_missing(self):
        response = self.client.get(reverse('business_public_detail', args=['yok-boyle-bir-yer']))
        self.assertEqual(response.status_code, 404)


class AdminBusinessApiTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.headers = admin_headers()
        self.media = tempfile.mkdtemp()
        self.override = override_settings(MEDIA_ROOT=self.media)
        self.override.enable()

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.media, ignore_errors=True)

    def create(self, **body):
        return self.client.post(reverse('admin_businesses'), data=body, content_type='application/json', **self.headers)

    def test_create_assigns_unique_slug(self):
        first = self.create(name='Kule Bungalov', instagram='kule.bungalov', phone='0532 111 22 33')
        self.assertEqual(first.status_code, 201)
        business = first.json()['business']
        self.assertEqual(business['slug'], 'kule-bungalov')
        self.assertEqual(business['instagramUsername'], '@kule.bungalov')
        self.assertEqual(business['handle'], 'kule.bungalov')
        self.assertEqual(business['phones'], ['+905321112233'])

        second = self.create(name='Kule Bungalov', phone='0532 111 22 44')
        self.assertEqual(second.json()['business']['slug'], 'kule-bungalov-2')

    def test_create_duplicate_phone(self):
        self.create(name='Kule', phone='0532 111 22 33')
        response = self.create(name='Başka', phone='+905321112233')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'DUPLICATE')

    def test_create_without_name(self):
        business = self.create(title='').json()['business']
        self.assertEqual(business['name'], 'İsimsiz İşletme')
        self.assertEqual(business['slug'], 'isimsiz-isletme')

    def test_list_filter_and_csv(self):
        self.create(name='Kule Bungalov', city='Sapanca')
        self.create(name='Göl Evi', city='Bolu', verified=True)
        data = self.client.get(reverse('admin_businesses'), {'q': 'Sapanca'}, **self.headers).json()
        self.assertEqual([b['name'] for b in data['businesses']], ['Kule Bungalov'])
        self.assertEqual(data['total'], 1)

        data = self.client.get(reverse('admin_businesses'), {'verified': 'true'}, **self.headers).json()
        self.assertEqual([b['name'] for b in data['items']], ['Göl Evi'])

        response = self.client.get(reverse('admin_businesses'), {'format': 'csv'}, **self.headers)
        self.assertIn('text/csv', response['Content-Type'])
        export = self.client.get(reverse('admin_businesses_export'), **self.headers)
        self.assertIn('"Göl Evi"', export.content.decode('utf-8-sig'))

    def test_patch(self):
        business = self.create(name='Kule', phone='0532 111 22 33').json()['business']
        url = reverse('admin_business_detail', args=[business['id']])

        response = self.client.patch(url, data={'website': 'kule.com', 'slug': 'kule-sapanca'},
                                     content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 200)
        updated = response.json()['business']
        self.assertEqual(updated['website'], 'https://kule.com')
        self.assertEqual(updated['slug'], 'kule-sapanca')
        self.assertEqual(updated['phone'], '+905321112233')

        response = self.client.patch(url, data={}, content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 400)

    def test_patch_duplicate(self):
        self.create(name='Kule', phone='0532 111 22 33')
        other = self.create(name='Göl', phone='0532 111 22 44').json()['business']
        response = self.client.patch(
            reverse('admin_business_detail', args=[other['id']]), data={'phone': '05321112233'},
            content_type='application/json', **self.headers,
        )
        self.assertEqual(response.status_code, 409)

    def test_get_by_slug_and_delete(self):
        self.create(name='Kule')
        url = reverse('admin_business_detail', args=['kule'])
        self.assertEqual(self.client.get(url, **self.headers).json()['business']['name'], 'Kule')
        self.assertTrue(self.client.delete(url, **self.headers).json()['success'])
        self.assertEqual(self.client.get(url, **self.headers).status_code, 404)

    def test_cover_upload(self):
        business = Business.objects.create(name='Kule', gallery=['https://cdn.example.com/old.webp'])
        response = self.client.post(
            reverse('admin_business_cover', args=[business.pk]), {'file': png_upload('kapak.png')}, **self.headers,
        )
        self.assertEqual(response.status_code, 200)
        url = response.json()['file']['url']
        self.assertTrue(url.startswith('/uploads/kule/kapak-'))
        business.refresh_from_db()
        self.assertEqual(business.gallery, [url, 'https://cdn.example.com/old.webp'])
        self.assertTrue((Path(self.media) / url[len('/uploads/'):]).exists())

    def test_cover_rejects_non_image(self):
        business = Business.objects.create(name='Kule')
        fake = SimpleUploadedFile('kapak.png', b'not really', content_type='image/png')
        response = self.client.post(reverse('admin_business_cover', args=[business.pk]), {'file': fake}, **self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'BAD_FILE_TYPE')

    def test_bulk(self):
        a = Business.objects.create(name='A')
        b = Business.objects.create(name='B', verified=True)
        bulk = reverse('admin_businesses_bulk')

        data = self.client.post(bulk, data={'ids': [a.pk, b.pk], 'op': 'verify'},
                                content_type='application/json', **self.headers).json()
        self.assertEqual((data['matched'], data['modified']), (2, 1))

        data = self.client.post(bulk, data={'ids': [a.pk], 'op': 'status', 'value': 'approved'},
                                content_type='application/json', **self.headers).json()
        self.assertEqual(data['modified'], 1)

        response = self.client.post(bulk, data={'ids': [a.pk], 'op': 'status', 'value': 'bogus'},
                                    content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 400)

        data = self.client.post(bulk, data={'ids': f'{a.pk},{b.pk}', 'op': 'delete'},
                                content_type='application/json', **self.headers).json()
        self.assertEqual(data['deleted'], 2)
        self.assertFalse(Business.objects.exists())


class BusinessUploadTests(TestCase):

    def setUp(self):
        self.media = tempfile.mkdtemp()
        self.override = override_settings(MEDIA_ROOT=self.media)
        self.override.enable()

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.media, ignore_errors=True)

    def test_upload_files(self):
        response = self.client.post(reverse('admin_business_upload'), {
            'slug': 'Kule Bungalov', 'files': [png_upload('a.png'), png_upload('b.png')],
        }, **admin_headers())
        self.assertEqual(response.status_code, 200)
        files = response.json()['files']
        self.assertEqual(len(files), 2)
        self.assertTrue(files[0]['url'].startswith('/uploads/kule-bungalov/a-'))
        self.assertEqual(files[0]['originalName'], 'a.png')

    def test_same_named_files_do_not_collide(self):
        response = self.client.post(reverse('admin_business_upload'), {
            'slug': 'kule', 'files': [png_upload('foto.png'), png_upload('foto.png')],
        }, **admin_headers())
        self.assertEqual(response.status_code, 200)
        names = [f['filename'] for f in response.json()['files']]
        self.assertEqual(len(set(names)), 2)
        self.assertEqual(len(list((Path(self.media) / 'kule').iterdir())), 2)

    def test_no_files(self):
        response = self.client.post(reverse('business_upload'), {'slug': 'x'}, **admin_headers())
        self.assertEqual(response.json()['code'], 'NO_FILES')

    def test_rejects_non_images(self):
        pdf = SimpleUploadedFile('a.pdf', b'%PDF', content_type='application/pdf')
        response = self.client.post(reverse('business_upload'), {'files': pdf}, **admin_headers())
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'BAD_FILE_TYPE')

    def test_requires_admin(self):
        response = self.client.post(reverse('business_upload'), {'files': png_upload()})
        self.assertEqual(response.status_code, 403)

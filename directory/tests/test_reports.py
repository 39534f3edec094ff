"""
e-doğrula: public reports, supports and admin report moderation.
"""

import shutil
import tempfile

from django.test import Client, TestCase, override_settings
from django.urls import reverse

from directory.auth import issue_token
from directory.models import Blacklist, Report

from .helpers import admin_headers, png_upload

REPORT = {
    'name': 'Sahte Otel',
    'desc': 'Kapora alıp ortadan kayboldu.',
    'instagram': 'sahte.otel',
    'phone': '0532 999 88 77',
    'email': 'Mağdur@Example.com',
    'consent': True,
}


class PublicReportTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.media = tempfile.mkdtemp()
        self.override = override_settings(MEDIA_ROOT=self.media, ASSET_BASE='/uploads/report')
        self.override.enable()

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.media, ignore_errors=True)

    def post_json(self, body, **extra):
        return self.client.post(reverse('report_collection'), data=body, content_type='application/json', **extra)

    def test_create_json(self):
        response = self.post_json(REPORT, HTTP_USER_AGENT='pytest', REMOTE_ADDR='10.1.1.1')
        self.assertEqual(response.status_code, 201)
        report = Report.objects.get(pk=response.json()['id'])
        self.assertEqual(report.instagram_username, '@sahte.otel')
        self.assertEqual(report.instagram_url, 'https://instagram.com/sahte.otel')
        self.assertEqual(report.phone, '+905329998877')
        self.assertEqual(report.reporter_email, 'mağdur@example.com')
        self.assertEqual(report.created_by_ip, '10.1.1.1')
        self.assertEqual(report.user_agent, 'pytest')
        self.assertEqual(report.status, 'open')
        self.assertTrue(report.consent)

    def test_create_multipart_with_evidence(self):
        response = self.client.post(reverse('report_collection'), {
            **{k: v for k, v in REPORT.items() if k != 'consent'},
            'consent': 'true',
            'evidence': [png_upload('dekont.png')],
        })
        self.assertEqual(response.status_code, 201)
        files = response.json()['report']['evidenceFiles']
        self.assertEqual(len(files), 1)
        self.assertTrue(files[0].startswith('/uploads/report/report_'))
        self.assertTrue(files[0].endswith('_dekont.png'))

    def test_consent_required_first(self):
        response = self.post_json({'consent': False})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'CONSENT_REQUIRED')

    def test_name_and_description_required(self):
        response = self.post_json({**REPORT, 'desc': '  '})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'VALIDATION_ERROR')
        self.assertFalse(Report.objects.exists())

    def test_verify_token_sets_verified_email(self):
        token = issue_token({'sub': 'email-verify', 'email': 'Dogrulanmis@Example.com'})
        response = self.post_json(REPORT, HTTP_X_VERIFY_TOKEN=token)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Report.objects.get().verified_email, 'dogrulanmis@example.com')

    def test_verify_token_with_wrong_subject(self):
        token = issue_token({'sub': 'login', 'email': 'a@example.com'})
        response = self.post_json(REPORT, HTTP_X_VERIFY_TOKEN=token)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['code'], 'VERIFY_INVALID')

    @override_settings(REPORT_REQUIRE_VERIFY=True)
    def test_verify_required(self):
        response = self.post_json(REPORT)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['code'], 'VERIFY_REQUIRED')

    def test_public_detail_is_masked(self):
        report = Report.objects.create(name='Sahte Otel', desc='x', reporter_email='a@example.com', created_by_ip='1.2.3.4')
        data = self.client.get(reverse('report_public_detail', args=[report.pk])).json()
        self.assertFalse(data['admin'])
        self.assertNotIn('reporterEmail', data['report'])
        self.assertNotIn('createdByIp', data['report'])

        data = self.client.get(reverse('report_public_detail', args=[report.pk]), **admin_headers()).json()
        self.assertTrue(data['admin'])
        self.assertEqual(data['report']['reporterEmail'], 'a@example.com')

    def test_public_detail_bad_id(self):
        self.assertEqual(self.client.get(reverse('report_public_detail', args=['abc'])).status_code, 400)
        self.assertEqual(self.client.get(reverse('report_public_detail', args=['9999'])).status_code, 404)

    def test_list_requires_admin(self):
        self.assertEqual(self.client.get(reverse('report_collection')).status_code, 403)
        Report.objects.create(name='Sahte Otel', desc='x')
        data = self.client.get(reverse('report_collection'), **admin_headers()).json()
        self.assertEqual(data['total'], 1)


class ReportSupportTests(TestCase):

    def setUp(self):
        self.report = Report.objects.create(name='Sahte Otel', desc='x')
        self.url = reverse('report_support', args=[self.report.pk])

    def test_support_counted_once_per_fingerprint(self):
        first = self.client.post(self.url, data={'fingerprint': 'abc'}, content_type='application/json').json()
        self.assertEqual(first, {'success': True, 'updated': True, 'supportCount': 1})
        again = self.client.post(self.url, data={'fingerprint': 'abc'}, content_type='application/json').json()
        self.assertEqual(again, {'success': True, 'updated': False, 'supportCount': 1})
        other = self.client.post(self.url, data={'fingerprint': 'def'}, content_type='application/json').json()
        self.assertEqual(other['supportCount'], 2)

    def test_fingerprint_from_ip_and_agent(self):
        self.client.post(self.url, REMOTE_ADDR='10.0.0.1', HTTP_USER_AGENT='a')
        self.client.post(self.url, REMOTE_ADDR='10.0.0.1', HTTP_USER_AGENT='a')
        self.client.post(self.url, REMOTE_ADDR='10.0.0.2', HTTP_USER_AGENT='a')
        self.report.refresh_from_db()
        self.assertEqual(self.report.support_count, 2)
        self.assertIsNotNone(self.report.last_supported_at)

    def test_missing_report(self):
        response = self.client.post(reverse('report_support', args=['9999']), data={'fingerprint': 'x'},
                                    content_type='application/json')
        self.assertEqual(response.status_code, 404)


class AdminReportApiTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.headers = admin_headers()
        self.report = Report.objects.create(
            name='Sahte Otel', desc='Kapora', instagram_username='sahte.otel', phone='0532 999 88 77',
            evidence_files=['/uploads/report/a.png'],
        )

    def test_list_filter(self):
        Report.objects.create(name='Başka', desc='y', status='closed')
        data = self.client.get(reverse('admin_reports'), {'status': 'open'}, **self.headers).json()
        self.assertEqual([r['name'] for r in data['items']], ['Sahte Otel'])
        data = self.client.get(reverse('admin_reports'), {'q': 'sahte'}, **self.headers).json()
        self.assertEqual(data['total'], 1)

    def test_patch(self):
        url = reverse('admin_report_detail', args=[self.report.pk])
        response = self.client.patch(url, data={'status': 'closed', 'desc': 'güncel'},
                                     content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 200)
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, 'closed')
        self.assertEqual(self.report.desc, 'güncel')
        self.assertEqual(self.report.evidence_files, ['/uploads/report/a.png'])

        response = self.client.patch(url, data={'status': 'bogus'}, content_type='application/json', **self.headers)
        self.assertEqual(response.json()['code'], 'INVALID_STATUS')

    def test_promote_to_blacklist(self):
        url = reverse('admin_report_blacklist', args=[self.report.pk])
        response = self.client.post(url, data={'severity': 'high'}, content_type='application/json', **self.headers)
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data['created'])
        self.assertEqual(data['blacklist']['status'], 'active')
        self.assertEqual(data['blacklist']['severity'], 'high')
        self.assertEqual(data['blacklist']['instagramUsername'], 'sahte.otel')
        self.assertEqual(data['blacklist']['evidenceUrls'], ['/uploads/report/a.png'])
        self.assertEqual(data['blacklist']['reportIds'], [str(self.report.pk)])
        self.assertEqual(data['report']['status'], 'reviewing')

        again = self.client.post(url, **self.headers)
        self.assertEqual(again.status_code, 200)
        self.assertFalse(again.json()['created'])
        self.assertEqual(Blacklist.objects.count(), 1)

        detail = self.client.get(reverse('admin_report_detail', args=[self.report.pk]), **self.headers).json()
        self.assertEqual(detail['report']['blacklistIds'], [data['blacklist']['id']])

    def test_bulk_and_delete(self):
        other = Report.objects.create(name='Başka', desc='y')
        data = self.client.post(reverse('admin_reports_bulk'), data={
            'ids': [self.report.pk, other.pk], 'op': 'status', 'value': 'closed',
        }, content_type='application/json', **self.headers).json()
        self.assertEqual(data['modified'], 2)

        self.client.delete(reverse('admin_report_detail', args=[other.pk]), **self.headers)
        data = self.client.post(reverse('admin_reports_bulk'), data={
            'ids': [self.report.pk], 'op': 'delete',
        }, content_type='application/json', **self.headers).json()
        self.assertEqual(data['deleted'], 1)
        self.assertFalse(Report.objects.exists())

    def test_export(self):
        response = self.client.get(reverse('admin_reports_export'), **self.headers)
        body = response.content.decode('utf-8-sig')
        self.assertTrue(body.startswith('id;name;instagramUsername'))
        self.assertIn('@sahte.otel', body)

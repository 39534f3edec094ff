"""
e-doğrula: email verification codes and the email-verify token they unlock.
"""

from datetime import timedelta
from smtplib import SMTPException
from unittest import mock

from django.core import mail
from django.test import Client, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from directory.auth import decode_token
from directory.models import Report, VerificationCode
from directory.services import otp

EMAIL = 'Musteri@Example.com'


@override_settings(IS_PRODUCTION=False, MAIL_ENABLED=False, OTP_RESEND_SECONDS=45)
class SendCodeTests(TestCase):

    def setUp(self):
        self.client = Client()

    def send(self, email=EMAIL, query=''):
        return self.client.post(
            reverse('auth_send_code') + query, data={'email': email}, content_type='application/json',
            HTTP_USER_AGENT='pytest', REMOTE_ADDR='10.0.0.5',
        )

    def test_dev_response_carries_code(self):
        response = self.send()
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertRegex(data['devCode'], r'^\d{6}$')
        vc = VerificationCode.objects.get()
        self.assertEqual(vc.email, 'musteri@example.com')
        self.assertEqual(vc.purpose, 'verify_email')
        self.assertEqual(vc.ip, '10.0.0.5')
        self.assertNotEqual(vc.code_hashed, data['devCode'])
        self.assertEqual(vc.code_hashed, otp.hash_code(data['devCode']))

    def test_invalid_email(self):
        response = self.send('not-an-email')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'INVALID_EMAIL')
        self.assertFalse(VerificationCode.objects.exists())

    def test_resend_too_soon(self):
        self.send()
        response = self.send()
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()['code'], 'TOO_SOON')
        self.assertEqual(VerificationCode.objects.count(), 1)

    def test_force_skips_wait_and_replaces_code(self):
        self.send()
        response = self.send(query='?force=1')
        self.assertEqual(response.status_code, 200)
        vc = VerificationCode.objects.get()
        self.assertEqual(vc.code_hashed, otp.hash_code(response.json()['devCode']))

    def test_resend_allowed_after_wait(self):
        self.send()
        VerificationCode.objects.update(created_at=timezone.now() - timedelta(seconds=60))
        self.assertEqual(self.send().status_code, 200)

    @override_settings(MAIL_ENABLED=True)
    def test_mail_sent_without_dev_code(self):
        response = self.send()
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('devCode', response.json())
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['musteri@example.com'])
        self.assertEqual(message.subject, otp.MAIL_SUBJECT)
        vc = VerificationCode.objects.get()
        code = next(c for c in message.body.split() if c.isdigit() and len(c) == 6)
        self.assertEqual(vc.code_hashed, otp.hash_code(code))

    @override_settings(IS_PRODUCTION=True, MAIL_ENABLED=False)
    def test_production_without_mail(self):
        response = self.send()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['code'], 'MAIL_NOT_CONFIGURED')

    @override_settings(IS_PRODUCTION=True, MAIL_ENABLED=True)
    def test_production_mail_failure(self):
        with mock.patch('directory.services.otp.send_mail', side_effect=SMTPException('down')):
            response = self.send()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['code'], 'MAIL_SEND_FAILED')

    @override_settings(IS_PRODUCTION=True, MAIL_ENABLED=True)
    def test_force_ignored_in_production(self):
        self.send()
        self.assertEqual(self.send(query='?force=1').status_code, 429)


@override_settings(IS_PRODUCTION=False, OTP_MAX_ATTEMPTS=5)
class VerifyCodeTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.code, _ = otp.generate_code('musteri@example.com')

    def verify(self, code, email=EMAIL):
        return self.client.post(
            reverse('auth_verify_code'), data={'email': email, 'code': code}, content_type='application/json',
        )

    def wrong(self):
        return '000000' if self.code != '000000' else '111111'

    def test_success_issues_email_verify_token(self):
        response = self.verify(self.code)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['expiresIn'], 600)
        payload = decode_token(data['emailVerifyToken'])
        self.assertEqual(payload['sub'], 'email-verify')
        self.assertEqual(payload['email'], 'musteri@example.com')
        self.assertIsNotNone(VerificationCode.objects.get().used_at)

    def test_code_is_single_use(self):
        self.verify(self.code)
        response = self.verify(self.code)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'CODE_USED')

    def test_malformed_input(self):
        self.assertEqual(self.verify('12ab').json()['code'], 'VALIDATION_ERROR')
        self.assertEqual(self.verify(self.code, email='x').status_code, 400)

    def test_unknown_email(self):
        response = self.verify(self.code, email='baska@example.com')
        self.assertEqual(response.json()['code'], 'CODE_NOT_FOUND')

    def test_expired(self):
        VerificationCode.objects.update(expires_at=timezone.now() - timedelta(seconds=1))
        self.assertEqual(self.verify(self.code).json()['code'], 'CODE_EXPIRED')

    def test_wrong_guesses_lock_the_code(self):
        for attempt in range(1, 6):
            data = self.verify(self.wrong()).json()
            self.assertEqual(data['code'], 'CODE_INVALID')
            self.assertEqual(data['attempts'], attempt)
        data = self.verify(self.code).json()
        self.assertEqual(data['code'], 'CODE_LOCKED')
        self.assertEqual(data['attempts'], 5)

    @override_settings(REPORT_REQUIRE_VERIFY=True)
    def test_token_unlocks_report_submission(self):
        token = self.verify(self.code).json()['emailVerifyToken']
        response = self.client.post(
            reverse('report_collection'),
            data={'name': 'Sahte Otel', 'desc': 'Kapora alıp kayboldu.', 'consent': True},
            content_type='application/json',
            HTTP_X_VERIFY_TOKEN=token,
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Report.objects.get().verified_email, 'musteri@example.com')


class GenerateCodeTests(TestCase):

    def test_new_code_replaces_previous(self):
        otp.generate_code('a@example.com')
        otp.generate_code('a@example.com', purpose=VerificationCode.Purpose.LOGIN)
        otp.generate_code('a@example.com')
        self.assertEqual(VerificationCode.objects.filter(email='a@example.com').count(), 2)

    def test_ttl_is_clamped(self):
        _, ttl = otp.generate_code('a@example.com', ttl_seconds=5)
        self.assertEqual(ttl, 30)
        _, ttl = otp.generate_code('a@example.com', ttl_seconds=99999)
        self.assertEqual(ttl, 3600)

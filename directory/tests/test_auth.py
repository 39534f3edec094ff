"""
e-doğrula: login, token checks and admin gating.
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from directory.auth import issue_token
from directory.models import UserProfile

from .helpers import ADMIN_EMAIL, admin_token, bearer, user_token

User = get_user_model()


class LoginTests(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(username='ayse', email='ayse@example.com', password='secret123')

    def _login(self, email='ayse@example.com', password='secret123'):
        return self.client.post(
            reverse('auth_login'), data={'email': email, 'password': password}, content_type='application/json',
        )

    def test_login_returns_token_and_cookie(self):
        response = self._login(email='AYSE@example.com')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertTrue(data['token'])
        self.assertEqual(data['user']['email'], 'ayse@example.com')
        self.assertEqual(data['user']['role'], 'user')
        self.assertIn('token', response.cookies)
        self.assertTrue(response.cookies['token']['httponly'])

    def test_missing_fields(self):
        response = self._login(password='')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'VALIDATION_ERROR')

    def test_wrong_password_and_unknown_email(self):
        self.assertEqual(self._login(password='nope-nope').json()['code'], 'INVALID_CREDENTIALS')
        response = self._login(email='nobody@example.com')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {'ok': False, 'code': 'INVALID_CREDENTIALS', 'message': 'Geçersiz kimlik bilgileri'})

    @override_settings(LOGIN_MAX_ATTEMPTS=3, LOGIN_LOCK_MINUTES=15)
    def test_account_locked_after_repeated_failures(self):
        self.assertEqual(self._login(password='wrong-1').status_code, 401)
        self.assertEqual(self._login(password='wrong-2').status_code, 401)
        response = self._login(password='wrong-3')
        self.assertEqual(response.status_code, 423)
        self.assertEqual(response.json()['code'], 'LOCKED')
        self.assertIn('retryAt', response.json())
        # correct password does not help while locked
        self.assertEqual(self._login().status_code, 423)
        self.assertTrue(UserProfile.objects.get(user=self.user).is_locked)

    def test_success_resets_attempts(self):
        self._login(password='wrong-1')
        self._login()
        profile = UserProfile.objects.get(user=self.user)
        self.assertEqual(profile.login_attempts, 0)
        self.assertIsNotNone(profile.last_login_at)

    def test_me_and_logout(self):
        token = self._login().json()['token']
        response = self.client.get(reverse('auth_me'), **bearer(token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user']['email'], 'ayse@example.com')

        response = self.client.post(reverse('auth_logout'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.cookies['token'].value, '')

    def test_staff_user_gets_admin_role(self):
        User.objects.create_user(username='boss', email='boss@example.com', password='secret123', is_staff=True)
        data = self._login(email='boss@example.com').json()
        self.assertEqual(data['user']['role'], 'admin')
        self.assertTrue(data['user']['isAdmin'])


class TokenCheckTests(TestCase):

    def test_me_without_token(self):
        response = self.client.get(reverse('auth_me'))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['code'], 'NO_TOKEN')

    def test_expired_token(self):
        token = issue_token({'id': 1, 'email': 'a@b.c', 'role': 'admin'}, expires_in=timedelta(minutes=-5))
        response = self.client.get(reverse('admin_whoami'), **bearer(token))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['code'], 'TOKEN_EXPIRED')

    def test_tampered_token(self):
        response = self.client.get(reverse('admin_whoami'), **bearer(admin_token() + 'x'))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['code'], 'JWT_ERROR')

    def test_token_without_role(self):
        response = self.client.get(reverse('auth_me'), **bearer(issue_token({'id': 1})))
        self.assertEqual(response.json()['code'], 'INVALID_PAYLOAD')

    def test_whoami_requires_admin_role(self):
        response = self.client.get(reverse('admin_whoami'), **bearer(user_token()))
        self.assertEqual(response.status_code, 403)
        response = self.client.get(reverse('admin_whoami'), **bearer(admin_token()))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['you'], {'id': 1, 'email': ADMIN_EMAIL, 'role': 'admin'})

    def test_token_from_cookie(self):
        self.client.cookies['accessToken'] = admin_token()
        self.assertEqual(self.client.get(reverse('admin_whoami')).status_code, 200)

    def test_admin_email_check(self):
        ok = self.client.get(reverse('auth_admin_check'), **bearer(user_token(email=ADMIN_EMAIL)))
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json(), {'ok': True, 'email': ADMIN_EMAIL})
        denied = self.client.get(reverse('auth_admin_check'), **bearer(user_token()))
        self.assertEqual(denied.status_code, 403)

    def test_admin_email_list_read_per_request(self):
        boss = 'boss@edogrula.org'
        with override_settings(ADMIN_EMAILS=[boss]):
            self.assertEqual(self.client.get(reverse('auth_admin_check'), **bearer(user_token(email=boss))).status_code, 200)
            self.assertEqual(
                self.client.get(reverse('auth_admin_check'), **bearer(user_token(email=ADMIN_EMAIL))).status_code, 403,
            )
        with override_settings(ADMIN_EMAILS=[]):
            self.assertEqual(
                self.client.get(reverse('auth_admin_check'), **bearer(user_token(email=ADMIN_EMAIL))).status_code, 403,
            )


class EnsureAdminTests(TestCase):

    def test_anonymous_rejected(self):
        response = self.client.get(reverse('admin_applications'))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['code'], 'FORBIDDEN')

    def test_user_token_rejected(self):
        response = self.client.get(reverse('admin_applications'), **bearer(user_token()))
        self.assertEqual(response.status_code, 403)

    def test_admin_token_accepted(self):
        response = self.client.get(reverse('admin_me'), **bearer(admin_token()))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user']['email'], ADMIN_EMAIL)

    @override_settings(ADMIN_ACCESS_KEY='s3cret')
    def test_admin_key_header(self):
        response = self.client.get(reverse('admin_me'), HTTP_X_ADMIN_KEY='s3cret')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user']['method'], 'x-admin-key')
        self.assertEqual(self.client.get(reverse('admin_me'), HTTP_X_ADMIN_KEY='wrong').status_code, 403)

    @override_settings(ADMIN_BYPASS=True, IS_PRODUCTION=False)
    def test_dev_bypass(self):
        response = self.client.get(reverse('admin_me'))
        self.assertEqual(response.json()['user']['id'], 'dev_bypass')

    @override_settings(ADMIN_BYPASS=True, IS_PRODUCTION=True, JWT_SECRET='prod-secret')
    def test_bypass_ignored_in_production(self):
        self.assertEqual(self.client.get(reverse('admin_me')).status_code, 403)

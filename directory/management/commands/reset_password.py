"""
e-doğrula: set a new password for an existing user and clear any login lock.
Run: python manage.py reset_password --email=user@example.com --password=...
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Reset a user password and unlock the account.'

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, required=True)
        parser.add_argument('--password', type=str, required=True)

    def handle(self, *args, **options):
        from directory.models import UserProfile
        from directory.normalization import norm_email

        email = norm_email(options['email'])
        password = options['password'] or ''
        if len(password) < 8:
            raise CommandError('Password must be at least 8 characters.')

        user = get_user_model().objects.filter(email__iexact=email).first()
        if user is None:
            raise CommandError(f'No user with email {email}.')

        user.set_password(password)
        user.save(update_fields=['password'])
        profile = UserProfile.for_user(user)
        profile.login_attempts = 0
        profile.locked_until = None
        profile.save(update_fields=['login_attempts', 'locked_until'])
        self.stdout.write(self.style.SUCCESS(f'Password updated for {email}.'))

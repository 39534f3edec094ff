"""
e-doğrula: create an admin user, or promote an existing one.

Usage:
  python manage.py create_admin --email=admin@edogrula.org --password=...
  python manage.py create_admin --email=admin@edogrula.org --password=... --name="Site Yöneticisi"
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction


class Command(BaseCommand):
    help = 'Create an admin account or promote an existing user to admin.'

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, required=True, help='Login e-mail (case-insensitive)')
        parser.add_argument('--password', type=str, required=True, help='Password to set')
        parser.add_argument('--name', type=str, default='', help='Display name (optional)')

    def handle(self, *args, **options):
        from directory.models import UserProfile
        from directory.normalization import norm_email

        email = norm_email(options['email'])
        password = options['password'] or ''
        if not email or '@' not in email:
            raise CommandError('A valid --email is required.')
        if len(password) < 8:
            raise CommandError('Password must be at least 8 characters.')

        User = get_user_model()
        with transaction.atomic():
            user = User.objects.filter(email__iexact=email).first()
            created = user is None
            if created:
                user = User(username=email[:150], email=email)
            name = (options.get('name') or '').strip()
            if name:
                first, _, last = name.partition(' ')
                user.first_name, user.last_name = first[:150], last[:150]
            user.is_staff = True
            user.is_active = True
            user.set_password(password)
            user.save()

            profile = UserProfile.for_user(user)
            profile.role = UserProfile.Role.ADMIN
            profile.is_verified = True
            profile.login_attempts = 0
            profile.locked_until = None
            profile.save()

        verb = 'Created' if created else 'Promoted'
        self.stdout.write(self.style.SUCCESS(f'{verb} admin {email} (id={user.pk}).'))

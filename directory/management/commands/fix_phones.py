"""
e-doğrula: re-normalize Business.phone to E.164 (TR region).
Run: python manage.py fix_phones [--dry-run]
"""

from django.core.management.base import BaseCommand
from django.db import IntegrityError, transaction


class Command(BaseCommand):
    help = 'Normalize business phone numbers to E.164.'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Only report what would change')

    def handle(self, *args, **options):
        from directory.models import Business
        from directory.normalization import normalize_phone

        dry_run = options['dry_run']
        changed = conflicts = 0
        for business in Business.objects.exclude(phone='').order_by('pk'):
            fixed = normalize_phone(business.phone) or ''
            if fixed == business.phone:
                continue
            self.stdout.write(f'{business.pk}: {business.phone} -> {fixed}')
            if dry_run:
                changed += 1
                continue
            business.phone = fixed
            try:
                with transaction.atomic():
                    business.save(update_fields=['phone', 'updated_at'])
            except IntegrityError:
                conflicts += 1
                self.stdout.write(self.style.WARNING(f'{business.pk}: {fixed} already used by another business'))
                continue
            changed += 1

        if changed == 0 and conflicts == 0:
            self.stdout.write('All phone numbers already normalized.')
            return
        verb = 'Would update' if dry_run else 'Updated'
        self.stdout.write(self.style.SUCCESS(f'{verb} {changed} phone(s), {conflicts} conflict(s).'))

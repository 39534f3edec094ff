"""
e-doğrula: fill missing phone/website/address from Google Places.

Usage:
  python manage.py enrich_businesses_google --limit=50
  python manage.py enrich_businesses_google --dry-run --location="Sapanca, Sakarya"

Needs GOOGLE_PLACES_API_KEY in .env.
"""

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Q


class Command(BaseCommand):
    help = 'Enrich businesses missing a phone or website using Google Places.'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=0, help='Process at most N businesses (0 = all)')
        parser.add_argument('--dry-run', action='store_true', help='Look up but do not save')
        parser.add_argument('--location', type=str, default='', help='Appended to the search query')

    def handle(self, *args, **options):
        from directory.models import Business
        from directory.services.google_places import DEFAULT_LOCATION, PlacesClient, PlacesError, enrich_business

        try:
            client = PlacesClient()
        except PlacesError as e:
            raise CommandError(str(e))

        qs = Business.objects.filter(Q(phone='') | Q(website='')).order_by('created_at')
        if options['limit'] > 0:
            qs = qs[:options['limit']]
        location = (options.get('location') or '').strip() or DEFAULT_LOCATION
        dry_run = options['dry_run']

        found = updated = failed = 0
        for business in qs:
            try:
                result = enrich_business(business, client, location=location, save=not dry_run)
            except PlacesError as e:
                failed += 1
                self.stdout.write(self.style.WARNING(f'{business.name}: {e}'))
                continue
            if not result['found']:
                self.stdout.write(f'{business.name}: no match')
                continue
            found += 1
            if result['changed']:
                updated += 1
            self.stdout.write(f"{business.name}: {', '.join(result['changed']) or 'nothing to fill'}")

        prefix = '[dry-run] ' if dry_run else ''
        self.stdout.write(self.style.SUCCESS(
            f'{prefix}Matched {found}, updated {updated}, failed {failed}.'
        ))

"""
e-doğrula: export businesses to CSV (same format as the admin export).

Businesses matched by an active blacklist entry (phone digits or Instagram
username) are left out unless --include-blacklisted is given.

Run: python manage.py export_businesses --output=businesses.csv
"""

import io

from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Write businesses to a semicolon separated CSV file (stdout when --output is omitted).'

    def add_arguments(self, parser):
        parser.add_argument('--output', type=str, default='', help='Target file path')
        parser.add_argument(
            '--include-blacklisted',
            action='store_true',
            help='Also export businesses that match an active blacklist entry',
        )

    def handle(self, *args, **options):
        from directory.csv_export import union_header, write_csv
        from directory.models import Business
        from directory.normalization import phone_digits
        from directory.services.businesses import active_blacklist

        businesses = list(Business.objects.order_by('-created_at'))
        skipped = 0
        if not options['include_blacklisted']:
            entries = active_blacklist().values_list('phone_digits', 'instagram_username')
            bad_phones = {p for p, _ in entries if p}
            bad_handles = {h.lstrip('@').lower() for _, h in entries if h}
            kept = []
            for b in businesses:
                if (b.phone and phone_digits(b.phone) in bad_phones) or (
                    b.instagram_username and b.instagram_username.lstrip('@').lower() in bad_handles
                ):
                    skipped += 1
                    continue
                kept.append(b)
            businesses = kept

        rows = [b.to_json() for b in businesses]
        header = union_header(rows)

        output = (options.get('output') or '').strip()
        if not output:
            buf = io.StringIO()
            write_csv(buf, header, rows, always_quote=True)
            self.stdout.write(buf.getvalue(), ending='')
            return
        with open(output, 'w', encoding='utf-8', newline='') as fh:
            write_csv(fh, header, rows, always_quote=True)
        self.stdout.write(self.style.SUCCESS(
            f'Exported {len(rows)} business(es) to {output} ({skipped} blacklisted skipped).'
        ))

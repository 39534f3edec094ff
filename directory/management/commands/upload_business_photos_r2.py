"""
e-doğrula: upload <source>/<folder>/<file> images to R2 under <prefix>/<folder>/<file>.

With --link, public URLs are appended to the gallery of the business whose
slug equals <folder>.

Run: python manage.py upload_business_photos_r2 --source=./photos --link
"""

from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Upload business photos to Cloudflare R2 and optionally link them to galleries.'

    def add_arguments(self, parser):
        parser.add_argument('--source', type=str, required=True, help='Directory with one sub-folder per business')
        parser.add_argument('--prefix', type=str, default='business_photos', help='Key prefix in the bucket')
        parser.add_argument('--dry-run', action='store_true', help='List what would be uploaded')
        parser.add_argument('--link', action='store_true', help='Append URLs to Business.gallery (slug = folder)')

    def handle(self, *args, **options):
        from directory.models import Business
        from directory.normalization import MAX_GALLERY, uniq_strings
        from directory.services import r2

        source = Path(options['source']).expanduser()
        if not source.is_dir():
            raise CommandError(f'Source directory not found: {source}')
        dry_run = options['dry_run']
        client = None
        if not dry_run:
            try:
                client = r2.get_client()
            except r2.R2ConfigError as e:
                raise CommandError(str(e))

        uploaded = failed = 0
        urls_by_folder = {}
        for folder, path in r2.iter_photos(source):
            key = r2.object_key(options['prefix'], folder, path.name)
            if dry_run:
                self.stdout.write(f'[dry-run] {path} -> {key}')
                urls_by_folder.setdefault(folder, []).append(r2.public_url(key))
                continue
            try:
                url = r2.upload_file(client, path, key)
            except (BotoCoreError, ClientError) as e:
                failed += 1
                self.stdout.write(self.style.WARNING(f'{path}: {e}'))
                continue
            uploaded += 1
            urls_by_folder.setdefault(folder, []).append(url)

        linked = 0
        if options['link'] and not dry_run:
            for folder, urls in urls_by_folder.items():
                business = Business.objects.filter(slug=folder).first()
                if business is None:
                    self.stdout.write(self.style.WARNING(f'No business with slug {folder}'))
                    continue
                business.gallery = uniq_strings((business.gallery or []) + urls)[:MAX_GALLERY]
                business.save(update_fields=['gallery', 'updated_at'])
                linked += 1

        if dry_run:
            total = sum(len(v) for v in urls_by_folder.values())
            self.stdout.write(self.style.SUCCESS(f'[dry-run] {total} file(s) in {len(urls_by_folder)} folder(s).'))
            return
        self.stdout.write(self.style.SUCCESS(
            f'Uploaded {uploaded}, failed {failed}, linked {linked} business(es).'
        ))

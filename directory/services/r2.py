"""
e-doğrula: Cloudflare R2 (S3 compatible) uploads for business photos.
"""

import logging
import mimetypes
from pathlib import Path

import boto3
from django.conf import settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.avif', '.gif'}


class R2ConfigError(Exception):
    """R2 credentials or bucket missing from the environment."""


def r2_endpoint():
    return f'https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com'


def get_client():
    missing = [
        name for name in ('R2_ACCOUNT_ID', 'R2_ACCESS_KEY_ID', 'R2_SECRET_ACCESS_KEY', 'R2_BUCKET_NAME')
        if not getattr(settings, name, '')
    ]
    if missing:
        raise R2ConfigError('Missing settings: ' + ', '.join(missing))
    return boto3.client(
        's3',
        endpoint_url=r2_endpoint(),
        aws_access_key_id=settings.R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
        region_name='auto',
    )


def object_key(prefix, folder, filename):
    return '/'.join(part.strip('/') for part in (prefix, folder, filename) if part)


def public_url(key):
    base = (settings.R2_PUBLIC_BASE_URL or '').rstrip('/')
    return f'{base}/{key}' if base else f'/{key}'


def iter_photos(source: Path):
    """(folder, file) pairs for image files one level below ``source``, sorted."""
    for folder in sorted(p for p in Path(source).iterdir() if p.is_dir()):
        for item in sorted(folder.iterdir()):
            if item.is_file() and item.suffix.lower() in IMAGE_EXTENSIONS:
                yield folder.name, item


def upload_file(client, path: Path, key):
    content_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
    client.upload_file(
        str(path), settings.R2_BUCKET_NAME, key,
        ExtraArgs={'ContentType': content_type, 'CacheControl': 'public, max-age=31536000'},
    )
    logger.debug('R2 upload: %s -> %s', path, key)
    return public_url(key)

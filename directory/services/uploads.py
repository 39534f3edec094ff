"""
e-doğrula: disk uploads for applications, reports and business photos.

Files land under MEDIA_ROOT and are addressed publicly as /uploads/<relative path>.
Application images are re-encoded to webp with Pillow.
"""

from __future__ import annotations

import io
import logging
import os
import re
import secrets
import time
from dataclasses import dataclass, field
from pathlib import Path

from django.conf import settings
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

APPLY_MAX_IMAGES = 5
APPLY_MAX_DOCS = 5
WEBP_WIDTH = 1600
WEBP_QUALITY = 82

APPLY_ALLOWED_PREFIXES = ('image/',)
APPLY_ALLOWED_TYPES = {'application/pdf', 'application/x-pdf', 'application/octet-stream'}
REPORT_ALLOWED_TYPES = {'image/jpeg', 'image/png', 'image/webp', 'application/pdf'}
IMAGE_EXT_RE = re.compile(r'\.(jpe?g|png|webp|avif|heic|heif|tiff|gif)$', re.IGNORECASE)


class UploadError(Exception):
    """Upload rejected before anything was written."""

    def __init__(self, code, message, status=400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status


def safe_name(name, default='file'):
    """Filesystem-safe stem: word chars, dots and dashes, at most 80 chars."""
    s = re.sub(r'(\.\.)+', '.', str(name or ''))
    s = re.sub(r'[^\w.\-]+', '_', s, flags=re.ASCII).lstrip('_')
    return s[:80] or default


def folder_slug(value, default='business'):
    s = re.sub(r'[^a-z0-9-]+', '-', str(value or '').strip().lower()).strip('-')
    return s or default


def _unique_suffix():
    return f'{int(time.time() * 1000):x}_{secrets.token_hex(3)}'


def media_root() -> Path:
    return Path(settings.MEDIA_ROOT)


def public_path(abs_path: Path) -> str:
    rel = Path(abs_path).relative_to(media_root()).as_posix()
    return '/uploads/' + rel.lstrip('/')


def _write(target: Path, data: bytes):
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, 'wb') as fh:
        fh.write(data)


def _read(uploaded) -> bytes:
    uploaded.seek(0)
    return uploaded.read()


def check_limits(files, *, max_files, max_bytes, allowed, count_code='TOO_MANY_FILES', count_status=413,
                 type_code='BAD_FILE_TYPE', type_status=400):
    """Reject the whole request when a file is too big, of a disallowed type, or too many."""
    if len(files) > max_files:
        raise UploadError(count_code, 'Çok fazla dosya', count_status)
    for f in files:
        if f.size > max_bytes:
            raise UploadError('FILE_TOO_LARGE', 'Dosya çok büyük', 413)
        if not allowed((f.content_type or '').lower()):
            raise UploadError(type_code, 'Desteklenmeyen dosya tipi', type_status)


def classify(uploaded):
    content_type = (uploaded.content_type or '').lower()
    name = (uploaded.name or '').lower()
    is_pdf = 'pdf' in content_type or name.endswith('.pdf')
    is_img = content_type.startswith('image/') or bool(IMAGE_EXT_RE.search(name))
    return is_pdf, is_img


def to_webp(data: bytes, width=WEBP_WIDTH, quality=WEBP_QUALITY) -> bytes:
    """EXIF-rotate, shrink to ``width`` (never enlarge) and encode as webp."""
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        if img.width > width:
            height = round(img.height * width / img.width)
            img = img.resize((width, height), Image.LANCZOS)
        if img.mode not in ('RGB', 'RGBA'):
            img = img.convert('RGBA' if 'A' in img.getbands() else 'RGB')
        out = io.BytesIO()
        img.save(out, format='WEBP', quality=quality)
        return out.getvalue()


@dataclass
class ApplyUploadResult:
    folder_id: str
    folder: str
    docs: list = field(default_factory=list)
    images: list = field(default_factory=list)
    skipped: list = field(default_factory=list)


def save_apply_files(files) -> ApplyUploadResult:
    """
    Store application attachments under uploads/apply/<hex16>/.

    PDFs are written as-is, images are converted to webp. Files beyond five
    of each kind, unreadable images and unknown types are skipped with a reason.
    """
    check_limits(
        files,
        max_files=settings.APPLY_MAX_FILES,
        max_bytes=settings.APPLY_MAX_FILE_MB * 1024 * 1024,
        allowed=lambda ct: ct.startswith(APPLY_ALLOWED_PREFIXES) or ct in APPLY_ALLOWED_TYPES,
        count_code='UNEXPECTED_FILE',
        count_status=400,
        type_code='UNSUPPORTED_FILE_TYPE',
        type_status=415,
    )
    folder_id = secrets.token_hex(8)
    bucket = media_root() / 'apply' / folder_id
    result = ApplyUploadResult(folder_id=folder_id, folder=f'/uploads/apply/{folder_id}')

    for f in files:
        is_pdf, is_img = classify(f)
        if is_pdf and len(result.docs) >= APPLY_MAX_DOCS:
            result.skipped.append({'file': f.name, 'reason': 'doc_limit_exceeded'})
            continue
        if is_img and not is_pdf and len(result.images) >= APPLY_MAX_IMAGES:
            result.skipped.append({'file': f.name, 'reason': 'image_limit_exceeded'})
            continue

        base = safe_name(os.path.splitext(f.name or '')[0], default='')
        suffix = _unique_suffix()
        if is_pdf:
            target = bucket / f'{base or "belge"}_{suffix}.pdf'
            try:
                _write(target, _read(f))
            except OSError:
                logger.exception('Apply upload: writing %s failed', target)
                result.skipped.append({'file': f.name, 'reason': 'pdf_write_failed'})
                continue
            result.docs.append(public_path(target))
        elif is_img:
            target = bucket / f'{base or "image"}_{suffix}.webp'
            try:
                _write(target, to_webp(_read(f)))
            except (UnidentifiedImageError, OSError, ValueError) as e:
                logger.warning('Apply upload: image %s not converted: %s', f.name, e)
                result.skipped.append({'file': f.name, 'reason': 'image_convert_failed'})
                continue
            result.images.append(public_path(target))
        else:
            result.skipped.append({'file': f.name, 'reason': 'unsupported'})

    logger.info(
        'Apply upload stored: folder=%s docs=%s images=%s skipped=%s',
        folder_id, len(result.docs), len(result.images), len(result.skipped),
    )
    return result


def save_report_files(files) -> list[str]:
    """Store report evidence under uploads/report/; returns public URLs under ASSET_BASE."""
    check_limits(
        files,
        max_files=settings.REPORT_MAX_FILES,
        max_bytes=settings.REPORT_MAX_MB * 1024 * 1024,
        allowed=lambda ct: ct in REPORT_ALLOWED_TYPES,
    )
    urls = []
    for f in files:
        stem, ext = os.path.splitext(f.name or 'file')
        filename = f'report_{_unique_suffix()}_{safe_name(stem)}{ext.lower()}'
        _write(media_root() / 'report' / filename, _read(f))
        urls.append(f'{settings.ASSET_BASE}/{filename}')
    return urls


def save_business_files(files, slug) -> list[dict]:
    """Store business photos under uploads/<slug>/<base>-<timestamp>_<random><ext>."""
    check_limits(
        files,
        max_files=settings.BUSINESS_UPLOAD_MAX_FILES,
        max_bytes=settings.BUSINESS_UPLOAD_MAX_MB * 1024 * 1024,
        allowed=lambda ct: ct.startswith('image/'),
    )
    folder = folder_slug(slug)
    saved = []
    for f in files:
        stem, ext = os.path.splitext(f.name or 'photo')
        filename = f'{safe_name(stem, default="photo")}-{_unique_suffix()}{ext.lower()}'
        target = media_root() / folder / filename
        _write(target, _read(f))
        saved.append({
            'url': f'/uploads/{folder}/{filename}',
            'path': f'/uploads/{folder}/{filename}',
            'filename': filename,
            'originalName': f.name,
            'mimeType': f.content_type,
            'size': f.size,
        })
    return saved

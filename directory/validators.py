"""Validation helpers for views that accept user input and uploaded files."""

from __future__ import annotations

from datetime import datetime, time
from typing import Any

from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .normalization import clean, parse_consent

BUSINESS_NAME_MIN_LENGTH = 2


def parse_datetime_value(raw_value: Any, *, field_name: str):
    """ISO datetime or YYYY-MM-DD (start of day) -> aware datetime; empty -> None."""
    s = clean(raw_value if isinstance(raw_value, str) else str(raw_value or ""))
    if not s:
        return None
    try:
        value = parse_datetime(s)
        day = parse_date(s[:10]) if value is None and len(s) >= 10 else None
    except ValueError:
        value = day = None
    if value is None:
        if day is None:
            raise ValidationError(f"{field_name} must be a date.", code="invalid_date")
        value = datetime.combine(day, time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value, timezone.get_current_timezone())
    return value


def validate_business_name(value: Any) -> str:
    name = clean(value)
    if len(name) < BUSINESS_NAME_MIN_LENGTH:
        raise ValidationError("İşletme adı zorunludur.", code="BUSINESS_NAME_REQUIRED")
    return name


def validate_terms(value: Any) -> bool:
    if not parse_consent(value):
        raise ValidationError("Şartları kabul etmelisiniz.", code="TERMS_REQUIRED")
    return True


def validate_choice(value: Any, choices, *, field_name: str) -> str:
    s = clean(value)
    if s not in choices:
        raise ValidationError(f"Geçersiz {field_name}: {s or '-'}", code="INVALID_VALUE")
    return s


def validate_uploaded_image(
    uploaded_file: Any,
    *,
    max_size_bytes: int,
    field_name: str = "Görsel",
) -> None:
    """Validate image MIME type, file size, and binary integrity."""
    if not uploaded_file:
        raise ValidationError("Dosya bulunamadı", code="FILE_REQUIRED")
    if getattr(uploaded_file, "size", 0) > max_size_bytes:
        mb = max_size_bytes / (1024 * 1024)
        raise ValidationError(f"{field_name} en fazla {mb:.1f}MB olabilir.", code="FILE_TOO_LARGE")

    content_type = (getattr(uploaded_file, "content_type", "") or "").lower()
    if not content_type.startswith("image/"):
        raise ValidationError(f"{field_name} bir görsel olmalı.", code="BAD_FILE_TYPE")

    from PIL import Image, UnidentifiedImageError

    try:
        uploaded_file.seek(0)
        with Image.open(uploaded_file) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise ValidationError(f"{field_name} geçerli bir görsel değil.", code="BAD_FILE_TYPE") from exc
    finally:
        uploaded_file.seek(0)

"""
e-doğrula: email verification codes (hashed at rest) and the short-lived
``email-verify`` token that proves the caller owns an address.
"""

import hashlib
import hmac
import logging
import re
import secrets
from datetime import timedelta

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from directory.auth import issue_token
from directory.models import VerificationCode

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
VERIFY_SUBJECT = 'email-verify'
EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$', re.IGNORECASE)
CODE_RE = re.compile(r'^\d{4,8}$')
MAIL_SUBJECT = 'E-Doğrula: Doğrulama Kodunuz'

# verify_code reasons -> API message codes
REASON_CODES = {
    'not_found': 'CODE_NOT_FOUND',
    'used': 'CODE_USED',
    'expired': 'CODE_EXPIRED',
    'locked': 'CODE_LOCKED',
    'mismatch': 'CODE_INVALID',
}


def hash_code(plain: str) -> str:
    """Hash code for storage. Never store plain."""
    return hashlib.sha256(plain.encode()).hexdigest()


def is_valid_email(value: str) -> bool:
    return bool(value) and len(value) <= 254 and bool(EMAIL_RE.match(value))


def _latest(email, purpose):
    return VerificationCode.objects.filter(email=email, purpose=purpose).order_by('-created_at', '-pk').first()


def resend_too_soon(email: str, purpose: str = VerificationCode.Purpose.VERIFY_EMAIL) -> bool:
    """True when a code for this email was issued less than OTP_RESEND_SECONDS ago."""
    last = _latest(email, purpose)
    if last is None:
        return False
    return timezone.now() - last.created_at < timedelta(seconds=settings.OTP_RESEND_SECONDS)


def clear_codes(email: str, purpose: str = VerificationCode.Purpose.VERIFY_EMAIL) -> int:
    deleted, _ = VerificationCode.objects.filter(email=email, purpose=purpose).delete()
    return deleted


def generate_code(
    email: str,
    purpose: str = VerificationCode.Purpose.VERIFY_EMAIL,
    ttl_seconds: int | None = None,
    length: int = CODE_LENGTH,
    ip: str = '',
    user_agent: str = '',
    fingerprint: str = '',
) -> tuple[str, int]:
    """
    Store a new hashed numeric code, replacing earlier codes for the same
    email and purpose. Returns (plain code, ttl seconds); the caller sends it.
    """
    ttl = min(3600, max(30, int(ttl_seconds or settings.OTP_TTL_SECONDS)))
    plain = ''.join(secrets.choice('0123456789') for _ in range(length))
    with transaction.atomic():
        clear_codes(email, purpose)
        VerificationCode.objects.create(
            email=email,
            purpose=purpose,
            code_hashed=hash_code(plain),
            expires_at=timezone.now() + timedelta(seconds=ttl),
            ip=ip[:64],
            user_agent=user_agent[:500],
            fingerprint=fingerprint[:128],
        )
    logger.info('Verification code issued: email=%s purpose=%s ttl=%s', email, purpose, ttl)
    return plain, ttl


def verify_code(
    email: str,
    plain: str,
    purpose: str = VerificationCode.Purpose.VERIFY_EMAIL,
    max_attempts: int | None = None,
) -> tuple[bool, str, int | None]:
    """
    Check ``plain`` against the latest code for the email.
    Returns (ok, reason, attempts); reason is one of REASON_CODES on failure.
    Consumes the code on success. Wrong guesses count towards max_attempts.
    """
    max_attempts = max_attempts or settings.OTP_MAX_ATTEMPTS
    now = timezone.now()
    vc = _latest(email, purpose)
    if vc is None:
        return False, 'not_found', None
    if vc.used_at:
        return False, 'used', vc.attempts
    if vc.expires_at <= now:
        return False, 'expired', vc.attempts
    if vc.attempts >= max_attempts:
        return False, 'locked', vc.attempts

    live = VerificationCode.objects.filter(pk=vc.pk, used_at__isnull=True, expires_at__gt=now)
    if not hmac.compare_digest(vc.code_hashed, hash_code(str(plain))):
        live.filter(attempts__lt=max_attempts).update(attempts=F('attempts') + 1)
        vc.refresh_from_db(fields=['attempts'])
        logger.info('Verification code mismatch: email=%s attempts=%s', email, vc.attempts)
        return False, 'mismatch', vc.attempts

    # a parallel request may have consumed it first
    if not live.update(used_at=now):
        return False, 'used', vc.attempts
    return True, '', vc.attempts


def email_verify_token(email: str) -> str:
    return issue_token(
        {'sub': VERIFY_SUBJECT, 'email': email},
        timedelta(seconds=settings.EMAIL_VERIFY_TOKEN_SECONDS),
    )


def send_code_mail(email: str, code: str, ttl_seconds: int):
    """Raises smtplib.SMTPException / OSError when delivery fails."""
    minutes = max(1, round(ttl_seconds / 60))
    html = (
        '<div style="font-family:Arial,sans-serif;font-size:16px;line-height:1.5">'
        '<p>Merhaba,</p><p>E-Doğrula doğrulama kodunuz:</p>'
        f'<p style="font-size:26px;letter-spacing:4px;margin:12px 0"><b>{code}</b></p>'
        f'<p>Bu kod <b>{minutes} dakika</b> içinde geçerlidir.</p></div>'
    )
    send_mail(
        subject=MAIL_SUBJECT,
        message=f'E-Doğrula doğrulama kodunuz: {code}\nBu kod {minutes} dakika içinde geçerlidir.',
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[email],
        html_message=html,
        fail_silently=False,
    )

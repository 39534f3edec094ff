"""
e-doğrula: JWT auth and admin gating for JSON views.

Tokens are HS256, payload ``{id, email, role}``. Decorators answer with the
``{ok: false, code, message}`` error shape.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from functools import wraps
from typing import Iterable

import jwt
from django.conf import settings
from django.utils import timezone

from .view_utils import json_error

logger = logging.getLogger(__name__)

BEARER_RE = re.compile(r'^bearer\s+(.+)$', re.IGNORECASE)


class AuthError(Exception):
    def __init__(self, code: str, message: str, status: int = 401):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status

    def response(self):
        return json_error(self.code, self.message, self.status)


def _looks_like_jwt(value: str) -> bool:
    return value.count('.') == 2 and all(value.split('.'))


def extract_token(request) -> str | None:
    """Authorization header, then token/accessToken cookie, then ?token= outside production."""
    header = (request.headers.get('Authorization') or '').strip()
    if header:
        match = BEARER_RE.match(header)
        if match:
            return match.group(1).strip()
        if _looks_like_jwt(header):
            return header
    cookie = request.COOKIES.get('token') or request.COOKIES.get('accessToken')
    if cookie:
        return cookie
    if not settings.IS_PRODUCTION:
        query = (request.GET.get('token') or '').strip()
        if query:
            return query
    return None


def _secret() -> str:
    if settings.IS_PRODUCTION and settings.JWT_SECRET == settings.DEFAULT_JWT_SECRET:
        logger.error('JWT_SECRET is not configured in production')
        raise AuthError('SERVER_MISCONFIG', 'Sunucu yapılandırması hatalı (JWT_SECRET eksik).', 500)
    return settings.JWT_SECRET


def issue_token(payload: dict, expires_in: timedelta | None = None) -> str:
    now = timezone.now()
    claims = dict(payload)
    claims['iat'] = now
    claims['exp'] = now + (expires_in or timedelta(days=settings.JWT_EXPIRES_DAYS))
    return jwt.encode(claims, _secret(), algorithm='HS256')


def token_for_user(user) -> str:
    from .models import UserProfile

    profile = UserProfile.for_user(user)
    return issue_token({'id': user.pk, 'email': user.email, 'role': profile.role})


def decode_token(token: str) -> dict:
    """Verify an HS256 token; raises AuthError with a specific code on failure."""
    secret = _secret()
    try:
        payload = jwt.decode(
            token, secret, algorithms=['HS256'], leeway=settings.JWT_LEEWAY_SECONDS,
        )
    except jwt.ExpiredSignatureError:
        raise AuthError('TOKEN_EXPIRED', 'Oturum süresi doldu')
    except jwt.InvalidTokenError:
        raise AuthError('JWT_ERROR', 'Geçersiz token')
    if not isinstance(payload, dict):
        raise AuthError('AUTH_ERROR', 'Kimlik doğrulama başarısız')
    return payload


def authenticate_request(request) -> dict:
    """Decoded payload for the request's token, which must carry a role."""
    if settings.IS_PRODUCTION and settings.JWT_SECRET == settings.DEFAULT_JWT_SECRET:
        raise AuthError('SERVER_MISCONFIG', 'Sunucu yapılandırması hatalı (JWT_SECRET eksik).', 500)
    token = extract_token(request)
    if not token:
        raise AuthError('NO_TOKEN', 'Token gerekli')
    payload = decode_token(token)
    if not payload.get('role'):
        raise AuthError('INVALID_PAYLOAD', 'Geçersiz token')
    return payload


def _header_key_matches(request) -> bool:
    sent = request.headers.get('x-admin-key') or request.headers.get('x-admin-secret')
    expected = settings.ADMIN_ACCESS_KEY or settings.ADMIN_KEY
    return bool(expected and sent and sent == expected)


def is_admin_request(request) -> bool:
    """Non-raising admin check used by routes that serve both audiences."""
    if getattr(request, 'is_admin', False):
        return True
    if _header_key_matches(request):
        return True
    user = getattr(request, 'jwt_user', None)
    return bool(user and (user.get('role') == 'admin' or user.get('isAdmin') is True))


def require_auth(view):
    """Reject requests without a valid token; sets request.jwt_user."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            request.jwt_user = authenticate_request(request)
        except AuthError as e:
            return e.response()
        return view(request, *args, **kwargs)
    return wrapper


def require_admin(view):
    """require_auth plus role == admin."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            request.jwt_user = authenticate_request(request)
        except AuthError as e:
            return e.response()
        if request.jwt_user.get('role') != 'admin':
            return json_error('FORBIDDEN', 'Admin yetkisi gerekli', 403)
        request.is_admin = True
        return view(request, *args, **kwargs)
    return wrapper


def ensure_admin(view):
    """
    Admin gate for the admin API.

    Accepts, in order: ADMIN_BYPASS outside production, an already admin
    request, an x-admin-key / x-admin-secret header matching
    ADMIN_ACCESS_KEY (or ADMIN_KEY), or a token whose role is admin.
    """
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if settings.ADMIN_BYPASS and not settings.IS_PRODUCTION:
            request.is_admin = True
            request.admin = {'id': 'dev_bypass', 'method': 'ADMIN_BYPASS'}
            return view(request, *args, **kwargs)

        user = getattr(request, 'jwt_user', None)
        if getattr(request, 'is_admin', False) or (user and user.get('role') == 'admin'):
            request.is_admin = True
            request.admin = user or {'method': 'jwt_role'}
            return view(request, *args, **kwargs)

        if _header_key_matches(request):
            request.is_admin = True
            request.admin = {'id': 'header_key_admin', 'method': 'x-admin-key'}
            return view(request, *args, **kwargs)

        token = extract_token(request)
        if token:
            try:
                payload = decode_token(token)
            except AuthError as e:
                if e.code == 'SERVER_MISCONFIG':
                    return e.response()
                logger.info('Admin token rejected: %s', e.code)
            else:
                if payload.get('role') == 'admin' or payload.get('isAdmin') is True:
                    request.jwt_user = payload
                    request.is_admin = True
                    request.admin = payload
                    return view(request, *args, **kwargs)
        return json_error('FORBIDDEN', 'Admin yetkisi gerekli', 403)
    return wrapper


def _email_set(emails):
    if isinstance(emails, str):
        emails = emails.split(',')
    return {e.strip().lower() for e in emails or [] if e and e.strip()}


def require_admin_email(allowed: str | Iterable[str] | None = None):
    """
    Allow only authenticated users whose email is in ``allowed``
    (a string, list or comma-separated string). An empty list lets nobody in.
    Without ``allowed`` the list is read from settings.ADMIN_EMAILS per request.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            user = getattr(request, 'jwt_user', None)
            if not user:
                return json_error('UNAUTHENTICATED', 'Kimlik doğrulanmadı', 401)
            email = str(user.get('email') or '').lower()
            allowed_set = _email_set(settings.ADMIN_EMAILS if allowed is None else allowed)
            if not allowed_set or email not in allowed_set:
                return json_error('FORBIDDEN', 'Admin only', 403)
            return view(request, *args, **kwargs)
        return wrapper
    return decorator

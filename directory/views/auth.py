"""
e-doğrula: login, current user and logout. JWT is returned in the body and as an httpOnly cookie.
Email ownership is proven with a one-time code exchanged for an email-verify token.
"""

import logging
from smtplib import SMTPException

from django.conf import settings
from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import AuthError, require_admin, require_admin_email, require_auth, token_for_user
from directory.models import UserProfile
from directory.normalization import norm_email
from directory.services import otp
from directory.view_utils import client_ip, get_request_payload, json_error, normalize_id

logger = logging.getLogger(__name__)


def user_json(user, profile):
    return {
        'id': user.pk,
        'email': user.email,
        'role': profile.role,
        'name': user.get_full_name() or None,
        'isVerified': profile.is_verified,
        'isAdmin': profile.role == UserProfile.Role.ADMIN,
    }


def _set_auth_cookie(response, token):
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        token,
        max_age=settings.JWT_EXPIRES_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.IS_PRODUCTION,
        samesite='None' if settings.IS_PRODUCTION else 'Lax',
        path='/',
    )


@csrf_exempt
@require_http_methods(['POST'])
def login(request):
    """
    POST /api/auth/login  { email, password }
    200 { success, token, user } | 400 | 401 | 423 LOCKED { retryAt }
    """
    data = get_request_payload(request)
    email = norm_email(data.get('email'))
    password = str(data.get('password') or '')
    if not email or not password:
        return json_error('VALIDATION_ERROR', 'E-posta ve şifre zorunlu', 400)

    user = get_user_model().objects.filter(email__iexact=email, is_active=True).first()
    if user is None:
        logger.info('Login failed: unknown email=%s', email)
        return json_error('INVALID_CREDENTIALS', 'Geçersiz kimlik bilgileri', 401)

    profile = UserProfile.for_user(user)
    if profile.is_locked:
        return json_error(
            'LOCKED', 'Hesap geçici olarak kilitlendi.', 423,
            retryAt=profile.locked_until.isoformat(),
        )

    if not user.check_password(password):
        profile.mark_login_failure(settings.LOGIN_MAX_ATTEMPTS, settings.LOGIN_LOCK_MINUTES)
        logger.info('Login failed: email=%s attempts=%s', email, profile.login_attempts)
        if profile.is_locked:
            return json_error(
                'LOCKED', 'Hesap geçici olarak kilitlendi.', 423,
                retryAt=profile.locked_until.isoformat(),
            )
        return json_error('INVALID_CREDENTIALS', 'Geçersiz kimlik bilgileri', 401)

    try:
        token = token_for_user(user)
    except AuthError as e:
        return e.response()
    profile.mark_login_success()
    logger.info('Login ok: user=%s role=%s', user.pk, profile.role)

    response = JsonResponse({
        'success': True,
        'message': 'Giriş başarılı',
        'token': token,
        'user': user_json(user, profile),
    })
    _set_auth_cookie(response, token)
    return response


@require_http_methods(['GET'])
@require_auth
def me(request):
    payload = request.jwt_user
    users = get_user_model().objects.filter(is_active=True)
    user = None
    pk = normalize_id(payload.get('id'))
    if pk is not None:
        user = users.filter(pk=pk).first()
    if user is None and payload.get('email'):
        user = users.filter(email__iexact=payload['email']).first()
    if user is None:
        return json_error('AUTH_ERROR', 'Kullanıcı bulunamadı', 401)
    return JsonResponse({'success': True, 'user': user_json(user, UserProfile.for_user(user))})


@csrf_exempt
@require_http_methods(['POST'])
def logout(request):
    response = JsonResponse({'success': True, 'message': 'Çıkış yapıldı'})
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path='/')
    return response


@require_http_methods(['GET'])
@require_admin
def whoami(request):
    """GET /api/admin/_whoami: token holders with role admin."""
    payload = request.jwt_user
    return JsonResponse({
        'you': {'id': payload.get('id'), 'email': payload.get('email'), 'role': payload.get('role') or 'admin'},
    })


@require_http_methods(['GET'])
@require_auth
@require_admin_email()
def admin_email_check(request):
    """GET /api/auth/admin-check: 200 only for emails listed in ADMIN_EMAILS."""
    return JsonResponse({'ok': True, 'email': str(request.jwt_user.get('email') or '').lower()})


CODE_MESSAGES = {
    'CODE_NOT_FOUND': 'Bu e-posta için kod bulunamadı',
    'CODE_USED': 'Kod zaten kullanıldı',
    'CODE_EXPIRED': 'Kodun süresi doldu',
    'CODE_LOCKED': 'Çok fazla hatalı deneme',
    'CODE_INVALID': 'Kod hatalı',
}


@csrf_exempt
@require_http_methods(['POST'])
def send_code(request):
    """
    POST /api/auth/send-code  { email }
    Outside production ?force=1 skips the resend wait, ?clean=1 drops old codes,
    and the code comes back as devCode when mail is off or fails.
    """
    data = get_request_payload(request)
    email = norm_email(data.get('email'))
    if not otp.is_valid_email(email):
        return json_error('INVALID_EMAIL', 'Geçersiz e-posta', 400)

    dev = not settings.IS_PRODUCTION
    if dev and request.GET.get('clean') == '1':
        otp.clear_codes(email)
    force = dev and (request.GET.get('force') == '1' or request.GET.get('f') == '1')
    if not force and otp.resend_too_soon(email):
        return json_error('TOO_SOON', 'Lütfen biraz bekleyip tekrar deneyin.', 429)

    code, ttl = otp.generate_code(
        email,
        ip=client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', ''),
        fingerprint=str(request.headers.get('x-fp') or ''),
    )

    if settings.MAIL_ENABLED:
        try:
            otp.send_code_mail(email, code, ttl)
        except (SMTPException, OSError) as e:
            logger.warning('Verification mail failed: email=%s error=%s', email, e)
            if dev:
                return JsonResponse({
                    'success': True, 'message': 'Kod üretildi (mail gönderilemedi)', 'devCode': code,
                })
            return json_error('MAIL_SEND_FAILED', 'Doğrulama e-postası gönderilemedi', 500)
        return JsonResponse({'success': True, 'message': 'Kod gönderildi', 'expiresIn': ttl})

    if dev:
        logger.info('Verification code (dev): email=%s code=%s', email, code)
        return JsonResponse({'success': True, 'message': 'Kod üretildi', 'devCode': code, 'expiresIn': ttl})

    logger.error('Verification code requested but SMTP_HOST is not configured')
    return json_error('MAIL_NOT_CONFIGURED', 'E-posta gönderimi yapılandırılmamış', 500)


@csrf_exempt
@require_http_methods(['POST'])
def verify_code(request):
    """
    POST /api/auth/verify-code  { email, code }
    200 { success, emailVerifyToken, expiresIn } | 400 CODE_* { attempts }
    """
    data = get_request_payload(request)
    email = norm_email(data.get('email'))
    code = str(data.get('code') or '').strip()[:12]
    if not otp.is_valid_email(email) or not otp.CODE_RE.match(code):
        return json_error('VALIDATION_ERROR', 'Geçersiz giriş', 400)

    ok, reason, attempts = otp.verify_code(email, code)
    if not ok:
        error_code = otp.REASON_CODES.get(reason, 'CODE_INVALID')
        return json_error(error_code, CODE_MESSAGES[error_code], 400, attempts=attempts)

    try:
        token = otp.email_verify_token(email)
    except AuthError as e:
        return e.response()
    logger.info('Email verified: email=%s', email)
    return JsonResponse({
        'success': True,
        'emailVerifyToken': token,
        'expiresIn': settings.EMAIL_VERIFY_TOKEN_SECONDS,
    })

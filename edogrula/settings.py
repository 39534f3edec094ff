"""e-doğrula Django settings."""

import os
from pathlib import Path
from typing import Iterable

from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    return default


def _env_list(name: str, default: Iterable[str] | None = None) -> list[str]:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_int(name: str, default: int, minimum: int | None = None, maximum: int | None = None) -> int:
    try:
        value = int((os.environ.get(name) or "").strip() or default)
    except ValueError:
        value = default
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


DEBUG = _env_bool("DJANGO_DEBUG", default=True)  # default True for local; set False in production
SECRET_KEY = (os.environ.get("DJANGO_SECRET_KEY") or "").strip() or "dev-change-in-production-edogrula"
if not DEBUG and not (os.environ.get("DJANGO_SECRET_KEY") or "").strip():
    raise ImproperlyConfigured("DJANGO_SECRET_KEY must be set when DJANGO_DEBUG is false.")

ALLOWED_HOSTS = _env_list(
    "DJANGO_ALLOWED_HOSTS",
    default=["edogrula.org", "www.edogrula.org", "localhost", "127.0.0.1", "testserver"],
)

CSRF_TRUSTED_ORIGINS = _env_list(
    "DJANGO_CSRF_TRUSTED_ORIGINS",
    default=["https://edogrula.org", "https://www.edogrula.org"],
)

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'directory',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'directory.middleware.JwtUserMiddleware',
]

ROOT_URLCONF = 'edogrula.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'edogrula.wsgi.application'

# SQLite: timeout reduces lock wait; WAL via connection_created in directory.apps
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DATABASE_PATH') or BASE_DIR / 'db.sqlite3',
        'OPTIONS': {
            'timeout': 15,
        },
        'CONN_MAX_AGE': 0,
    }
}

# bcrypt first so hashes stay compatible with the previous user store
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.BCryptSHA256PasswordHasher',
    'django.contrib.auth.hashers.BCryptPasswordHasher',
    'django.contrib.auth.hashers.PBKDF2PasswordHasher',
]

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 6}},
]

LANGUAGE_CODE = 'tr'
TIME_ZONE = 'Europe/Istanbul'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {
        'BACKEND': (
            'django.contrib.staticfiles.storage.StaticFilesStorage' if DEBUG
            else 'whitenoise.storage.CompressedManifestStaticFilesStorage'
        ),
    },
}

# Search results cache; process-local is fine for a single worker.
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'edogrula-default',
        'OPTIONS': {'MAX_ENTRIES': 1000},
    }
}

# Uploaded files live under MEDIA_ROOT/uploads/... and are served from /uploads/.
MEDIA_URL = '/uploads/'
MEDIA_ROOT = Path(os.environ.get('UPLOADS_ROOT') or BASE_DIR / 'uploads')
# Prefix for public document URLs (e.g. https://cdn.edogrula.org). Empty -> site-relative.
FILE_BASE_URL = (os.environ.get('FILE_BASE_URL') or '').strip()
ASSET_BASE = (os.environ.get('ASSET_BASE') or '/uploads/report').strip().rstrip('/')

DATA_UPLOAD_MAX_MEMORY_SIZE = 30 * 1024 * 1024
FILE_UPLOAD_MAX_MEMORY_SIZE = 30 * 1024 * 1024

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

# Security defaults
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = "Lax"
CSRF_COOKIE_SAMESITE = "Lax"
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = "DENY"
SECURE_REFERRER_POLICY = "strict-origin-when-cross-origin"
SECURE_SSL_REDIRECT = _env_bool("DJANGO_SECURE_SSL_REDIRECT", default=not DEBUG)
SECURE_HSTS_SECONDS = _env_int("DJANGO_SECURE_HSTS_SECONDS", 31536000) if not DEBUG else 0
SECURE_HSTS_INCLUDE_SUBDOMAINS = not DEBUG
SECURE_HSTS_PRELOAD = not DEBUG

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Environment: production or development. Gates dev-only auth fallbacks.
ENVIRONMENT = (os.environ.get('ENVIRONMENT') or ('production' if not DEBUG else 'development')).strip().lower()
IS_PRODUCTION = ENVIRONMENT == 'production'

# JWT (HS256). The default secret is refused in production.
DEFAULT_JWT_SECRET = 'dev_secret_change_me'
JWT_SECRET = (os.environ.get('JWT_SECRET') or '').strip() or DEFAULT_JWT_SECRET
JWT_EXPIRES_DAYS = _env_int('JWT_EXPIRES_DAYS', 7, minimum=1)
JWT_LEEWAY_SECONDS = _env_int('JWT_LEEWAY_SECONDS', 5, minimum=0)
AUTH_COOKIE_NAME = 'token'

ADMIN_ACCESS_KEY = (os.environ.get('ADMIN_ACCESS_KEY') or '').strip()
ADMIN_KEY = (os.environ.get('ADMIN_KEY') or '').strip()
ADMIN_BYPASS = _env_bool('ADMIN_BYPASS', default=False)
ADMIN_EMAILS = _env_list('ADMIN_EMAILS', default=['admin@edogrula.org'])
LOGIN_MAX_ATTEMPTS = _env_int('LOGIN_MAX_ATTEMPTS', 5, minimum=1)
LOGIN_LOCK_MINUTES = _env_int('LOGIN_LOCK_MINUTES', 15, minimum=1)

# Public upload limits
APPLY_MAX_FILE_MB = _env_int('APPLY_MAX_FILE_MB', 15, minimum=1, maximum=50)
APPLY_MAX_FILES = _env_int('APPLY_MAX_FILES', 20, minimum=1, maximum=40)
REPORT_MAX_FILES = _env_int('REPORT_MAX_FILES', 10, minimum=1, maximum=20)
REPORT_MAX_MB = _env_int('REPORT_MAX_MB', 10, minimum=1, maximum=25)
REPORT_REQUIRE_VERIFY = _env_bool('REPORT_REQUIRE_VERIFY', default=False)
BUSINESS_UPLOAD_MAX_FILES = 10
BUSINESS_UPLOAD_MAX_MB = _env_int('BUSINESS_UPLOAD_MAX_MB', 10, minimum=1, maximum=25)

BUSINESS_SEARCH_TTL = _env_int('BUSINESS_SEARCH_TTL', 15, minimum=0)

# Email verification codes (/api/auth/send-code, /api/auth/verify-code)
OTP_TTL_SECONDS = _env_int('OTP_TTL_SECONDS', 600, minimum=30, maximum=3600)
OTP_RESEND_SECONDS = _env_int('OTP_RESEND_SECONDS', 45, minimum=0)
OTP_MAX_ATTEMPTS = _env_int('OTP_MAX_ATTEMPTS', 5, minimum=1)
EMAIL_VERIFY_TOKEN_SECONDS = 600

# Outgoing mail. Without SMTP_HOST codes are only returned in the response outside production.
MAIL_ENABLED = bool((os.environ.get('SMTP_HOST') or '').strip())
EMAIL_HOST = (os.environ.get('SMTP_HOST') or 'localhost').strip()
EMAIL_PORT = _env_int('SMTP_PORT', 587, minimum=1)
EMAIL_HOST_USER = (os.environ.get('SMTP_USER') or '').strip()
EMAIL_HOST_PASSWORD = os.environ.get('SMTP_PASS') or ''
EMAIL_USE_SSL = EMAIL_PORT == 465
EMAIL_USE_TLS = not EMAIL_USE_SSL
EMAIL_TIMEOUT = 15
DEFAULT_FROM_EMAIL = (os.environ.get('MAIL_FROM') or 'E-Doğrula <noreply@edogrula.org>').strip()

# Reviews
REVIEWS_CACHE_TTL = _env_int('REVIEWS_CACHE_TTL', 10, minimum=0)
REVIEW_RATE_LIMIT_PER_MIN = _env_int('REVIEW_RATE_LIMIT_PER_MIN', 8, minimum=1)

# Google Places (enrich_businesses_google command, reviews proxy, knowledge card)
GOOGLE_PLACES_API_KEY = (os.environ.get('GOOGLE_PLACES_API_KEY') or '').strip()
GOOGLE_PLACES_LANG = (os.environ.get('GOOGLE_PLACES_LANG') or 'tr').strip()
GOOGLE_API_TIMEOUT = _env_int('GOOGLE_API_TIMEOUT', 8, minimum=1)
GOOGLE_REVIEWS_HARD_LIMIT = _env_int('GOOGLE_REVIEWS_HARD_LIMIT', 1000, minimum=1)
GOOGLE_CACHE_TTL = _env_int('GOOGLE_CACHE_TTL', 3 * 60 * 60, minimum=0)
GEO_KNOWLEDGE_TTL = _env_int('GEO_KNOWLEDGE_TTL', 30 * 60, minimum=0)

# Cloudflare R2 (upload_business_photos_r2 command)
R2_ACCOUNT_ID = (os.environ.get('R2_ACCOUNT_ID') or '').strip()
R2_ACCESS_KEY_ID = (os.environ.get('R2_ACCESS_KEY_ID') or '').strip()
R2_SECRET_ACCESS_KEY = (os.environ.get('R2_SECRET_ACCESS_KEY') or '').strip()
R2_BUCKET_NAME = (os.environ.get('R2_BUCKET_NAME') or '').strip()
R2_PUBLIC_BASE_URL = (os.environ.get('R2_PUBLIC_BASE_URL') or '').strip().rstrip('/')

LOGS_DIR = BASE_DIR / 'logs'
LOGS_DIR.mkdir(exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} [{levelname}] {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'app_file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(LOGS_DIR / 'edogrula.log'),
            'maxBytes': 5 * 1024 * 1024,  # 5 MB
            'backupCount': 3,
            'formatter': 'verbose',
            'encoding': 'utf-8',
        },
    },
    'loggers': {
        'directory': {
            'handlers': ['console', 'app_file'],
            'level': os.environ.get('LOG_LEVEL', 'INFO').upper(),
            'propagate': False,
        },
    },
}

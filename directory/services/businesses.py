"""
e-doğrula: business lookup and the public search box.

Search classifies the query (Instagram link or username, website, phone or free
text), checks the blacklist first and only then verified businesses. Results
are cached for BUSINESS_SEARCH_TTL seconds.
"""

import hashlib
import logging
import re
from urllib.parse import urlsplit

from django.conf import settings
from django.core.cache import cache
from django.db.models import Q

from directory.models import Blacklist, Business
from directory.normalization import (
    SCHEME_RE,
    classify_query,
    clean,
    norm_handle,
    parse_bool,
    slugify_tr,
)
from directory.view_utils import normalize_id, parse_ids

logger = logging.getLogger(__name__)

SEARCH_MAX_LIMIT = 25
SEARCH_DEFAULT_LIMIT = 10
DEFAULT_COVER_MARKERS = ('/defaults/edogrula-default', 'edogrula-default.webp')
MEDIA_PREFIX_RE = re.compile(r'^(uploads?|images?|files?)/', re.IGNORECASE)

ADMIN_SEARCH_FIELDS = (
    'name', 'slug', 'handle', 'instagram_username', 'instagram_url', 'phone',
    'email', 'website', 'address', 'city', 'district',
)
ADMIN_SORT_FIELDS = {
    'createdAt': 'created_at', 'updatedAt': 'updated_at', 'name': 'name',
    'rating': 'rating', 'status': 'status', 'verified': 'verified',
}


def media_base():
    return (settings.R2_PUBLIC_BASE_URL or settings.FILE_BASE_URL or '').rstrip('/')


def abs_media_url(value):
    """Absolute URL for a stored gallery entry; bare uploads paths get the media base."""
    raw = clean(value)
    if not raw or raw.startswith('data:') or SCHEME_RE.match(raw) or raw.startswith('//'):
        return raw
    base = media_base()
    if raw.startswith('/'):
        return f'{base}{raw}' if base else raw
    if MEDIA_PREFIX_RE.match(raw) or '/' not in raw:
        rel = raw if MEDIA_PREFIX_RE.match(raw) else f'uploads/{raw}'
        return f'{base}/{rel}' if base else f'/{rel}'
    return f'{base}/{raw}' if base else raw


def public_json(business):
    """Business JSON with absolute gallery URLs; placeholder covers sink to the back."""
    data = business.to_json()
    gallery = [abs_media_url(u) for u in business.gallery or []]
    real = [u for u in gallery if not any(m in u.lower() for m in DEFAULT_COVER_MARKERS)]
    gallery = real or gallery
    data['gallery'] = gallery
    data['photo'] = gallery[0] if gallery else None
    return data


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def handle_q(handle):
    return Q(handle__iexact=handle) | Q(instagram_username__iregex=rf'^@?{re.escape(handle)}$')


def find_business(key):
    """Resolve a numeric id, slug, handle or Instagram username to a Business."""
    key = clean(str(key or ''))
    if not key:
        return None
    if key.isdigit():
        pk = normalize_id(key)
        business = Business.objects.filter(pk=pk).first() if pk else None
        if business:
            return business
    cond = Q()
    slug = slugify_tr(key)
    if slug:
        cond |= Q(slug=slug)
    handle = norm_handle(key)
    if handle:
        cond |= handle_q(handle)
    if not cond:
        return None
    return Business.objects.filter(cond).order_by('created_at').first()


def find_by_slug(slug):
    slug = slugify_tr(slug)
    return Business.objects.filter(slug=slug).first() if slug else None


def find_by_handle(handle):
    handle = norm_handle(handle)
    return Business.objects.filter(handle_q(handle)).first() if handle else None


def find_admin_business(key):
    """Admin routes address a business by primary key or exact slug."""
    pk = normalize_id(key) if str(key).isdigit() else None
    if pk:
        return Business.objects.filter(pk=pk).first()
    return Business.objects.filter(slug=clean(str(key))).first()


def active_blacklist():
    return Blacklist.objects.filter(is_deleted=False).exclude(status=Blacklist.Status.REMOVED)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def extract_host(value):
    s = clean(value)
    if not s:
        return ''
    if not SCHEME_RE.match(s):
        s = 'https://' + s
    try:
        host = urlsplit(s).hostname or ''
    except ValueError:
        return ''
    return re.sub(r'^www\.', '', host.lower())


def tr_phone_digits(value):
    """Last ten digits of a Turkish number; shorter input unchanged."""
    digits = re.sub(r'\D', '', str(value or ''))
    return digits[-10:] if len(digits) >= 10 else digits


def loose_regex(text, separator):
    """'5321112233' -> '5\\D*3\\D*2...' so formatting differences still match."""
    return separator.join(re.escape(ch) for ch in text)


def _search_conditions(raw, cls):
    value = clean(cls.get('value') or raw) or raw
    host = extract_host(value)
    host_core = host.split('.')[0] if host else ''

    if cls['type'] in ('ig_url', 'ig_username') and cls.get('username'):
        name_key = cls['username']
    elif cls['type'] == 'website' and host_core:
        name_key = host_core
    else:
        name_key = value
    name_key = clean(name_key)[:80]

    handle = norm_handle(cls.get('username') or name_key)
    core = re.sub(r'[^a-z0-9]', '', host_core.lower())
    digits = tr_phone_digits(value)
    return {
        'name': name_key if len(name_key) >= 2 else '',
        'host_core_re': loose_regex(core, r'[-_\s]*') if len(core) >= 4 else '',
        'slug': slugify_tr(name_key),
        'handle': handle,
        'url': value[:140],
        'host': host,
        'phone_re': loose_regex(digits, r'\D*') if len(digits) >= 7 else '',
    }


def _business_q(c):
    cond = Q()
    if c['name']:
        for field in ('name', 'address', 'summary', 'description'):
            cond |= Q(**{f'{field}__icontains': c['name']})
    if c['host_core_re']:
        cond |= Q(name__iregex=c['host_core_re']) | Q(slug__iregex=c['host_core_re'])
    if c['slug']:
        cond |= Q(slug__iexact=c['slug'])
    if c['handle']:
        cond |= handle_q(c['handle'])
    if c['url']:
        cond |= Q(instagram_url__icontains=c['url']) | Q(website__icontains=c['url'])
    if c['host']:
        cond |= Q(website__icontains=c['host'])
    if c['phone_re']:
        cond |= Q(phone__regex=c['phone_re'])
    return cond


def _blacklist_q(c):
    cond = Q()
    if c['name']:
        cond |= Q(name__icontains=c['name']) | Q(business_name__icontains=c['name'])
    if c['host_core_re']:
        cond |= Q(name__iregex=c['host_core_re'])
    if c['handle']:
        cond |= Q(instagram_username__iexact=c['handle'])
    if c['url']:
        cond |= Q(instagram_url__icontains=c['url'])
    if c['phone_re']:
        cond |= Q(phone__regex=c['phone_re'])
    return cond


def _cache_key(value, kind, limit):
    digest = hashlib.sha1(f'{kind}|{value}|{limit}'.encode('utf-8')).hexdigest()
    return f'business-search:{digest}'


def parse_search_limit(raw):
    try:
        limit = int(raw or SEARCH_DEFAULT_LIMIT)
    except (TypeError, ValueError):
        limit = SEARCH_DEFAULT_LIMIT
    return max(1, min(limit, SEARCH_MAX_LIMIT))


def search(raw, hinted_type='', limit=SEARCH_DEFAULT_LIMIT):
    """
    Public search. Returns a payload with status ``blacklist``, ``verified``
    or ``not_found``; a blacklist hit always wins over verified matches.
    """
    raw = clean(raw)
    cls = classify_query(raw, hinted_type)
    if not cls['ok']:
        return {'success': True, 'status': 'not_found', 'reason': cls['reason'], 'businesses': []}

    key = _cache_key(cls.get('value') or raw, cls['type'], limit)
    cached = cache.get(key)
    if cached is not None:
        return cached

    c = _search_conditions(raw, cls)
    logger.debug('Business search: q=%r type=%s conditions=%s', raw, cls['type'], c)

    black_cond = _blacklist_q(c)
    black = active_blacklist().filter(black_cond).first() if black_cond else None
    if black is not None:
        payload = {'success': True, 'status': 'blacklist', 'business': black.to_json()}
        logger.info('Business search hit blacklist: q=%r id=%s', raw, black.pk)
    else:
        business_cond = _business_q(c)
        rows = list(Business.objects.filter(business_cond)[:limit]) if business_cond else []
        if rows:
            items = [public_json(b) for b in rows]
            payload = {'success': True, 'status': 'verified', 'business': items[0], 'businesses': items}
        else:
            payload = {'success': True, 'status': 'not_found', 'businesses': []}

    cache.set(key, payload, settings.BUSINESS_SEARCH_TTL)
    return payload


# ---------------------------------------------------------------------------
# Admin listing
# ---------------------------------------------------------------------------

def filter_admin_queryset(params):
    qs = Business.objects.all()
    q = clean(params.get('q'))
    if q:
        cond = Q()
        for field in ADMIN_SEARCH_FIELDS:
            cond |= Q(**{f'{field}__icontains': q})
        qs = qs.filter(cond)
    ids = parse_ids(params.get('ids'))
    if ids:
        qs = qs.filter(pk__in=ids)
    status = clean(params.get('status'))
    if status and status != 'all':
        qs = qs.filter(status=status)
    verified = clean(params.get('verified')).lower()
    if verified in ('true', 'false'):
        qs = qs.filter(verified=parse_bool(verified))
    return qs


def apply_cover(business, url):
    """Put ``url`` in the first gallery slot, keeping the rest in order."""
    gallery = [u for u in business.gallery or [] if u != url]
    business.gallery = [url] + gallery
    return business

"""
e-doğrula: shared view helpers. Request parsing and response shapes only; no business logic.
"""

import json
import math
from datetime import datetime, time

from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date

MAX_PK = 2 ** 63 - 1


def json_error(code, message, status=400, **extra):
    """The API error shape: {ok: false, code, message}."""
    payload = {'ok': False, 'code': code, 'message': message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def validation_error_response(exc, default_code='VALIDATION_ERROR', status=400):
    """ValidationError -> error shape; the exception's code wins over ``default_code``."""
    message = exc.messages[0] if exc.messages else 'Geçersiz istek'
    return json_error(getattr(exc, 'code', None) or default_code, message, status)


def parse_request_json(request):
    """
    Parse JSON from request body. Returns dict or empty dict on failure.
    Does not log or raise; views should validate required keys.
    """
    if not request.body:
        return {}
    if request.content_type and "application/json" in request.content_type:
        try:
            data = json.loads(request.body)
        except (ValueError, TypeError):
            return {}
        return data if isinstance(data, dict) else {}
    return {}


def get_request_payload(request):
    """
    Return the request body as a single dict, JSON or form-encoded.

    Reads request.body only for JSON so multipart views can still use
    request.FILES afterwards.
    """
    content_type = (request.content_type or "").lower()
    if "application/json" in content_type:
        return parse_request_json(request)
    return request.POST.dict()


def parse_pagination(params, default_limit=20, max_limit=200):
    """(page, limit, offset) from ?page&limit with clamping."""
    try:
        page = max(1, int(params.get('page') or 1))
    except (ValueError, TypeError):
        page = 1
    try:
        limit = int(params.get('limit') or default_limit)
    except (ValueError, TypeError):
        limit = default_limit
    limit = min(max(1, limit), max_limit)
    return page, limit, (page - 1) * limit


def page_count(total, limit):
    return max(1, math.ceil(total / limit)) if limit else 1


def paginate(queryset, params, default_limit=20, max_limit=200):
    page, limit, offset = parse_pagination(params, default_limit, max_limit)
    total = queryset.count()
    items = list(queryset[offset:offset + limit])
    return items, {'total': total, 'page': page, 'pages': page_count(total, limit), 'limit': limit}


def parse_sort(raw, allowed, default):
    """
    Translate ``-createdAt,name`` style sort strings into ORM order_by terms.
    ``allowed`` maps API field names to model fields; unknown names are dropped.
    """
    terms = []
    for part in str(raw or default).split(','):
        part = part.strip()
        if not part:
            continue
        desc = part.startswith('-')
        field = allowed.get(part.lstrip('-'))
        if field:
            terms.append(('-' if desc else '') + field)
    if not terms and raw:
        return parse_sort(None, allowed, default)
    return terms


def _day(value):
    if not value:
        return None
    try:
        return parse_date(str(value)[:10])
    except ValueError:
        # well formed but impossible, e.g. 2024-13-45
        return None


def parse_day_bounds(date_from, date_to):
    """
    YYYY-MM-DD strings -> (start of first day, end of last day) aware datetimes.
    Unparseable bounds come back as None.
    """
    start = end = None
    tz = timezone.get_current_timezone()
    d = _day(date_from)
    if d:
        start = timezone.make_aware(datetime.combine(d, time.min), tz)
    d = _day(date_to)
    if d:
        end = timezone.make_aware(datetime.combine(d, time(23, 59, 59, 999000)), tz)
    return start, end


def parse_ids(raw):
    """List of integer primary keys from a list, CSV string or prefixed ids."""
    if isinstance(raw, str):
        raw = raw.split(',')
    if not isinstance(raw, (list, tuple)):
        return []
    out = []
    for value in raw:
        pk = normalize_id(value)
        if pk is not None and pk not in out:
            out.append(pk)
    return out


def normalize_id(value):
    """'apply_42' -> 42; anything not ending in digits -> None."""
    s = str(value if value is not None else '').strip()
    if '_' in s:
        s = s.rsplit('_', 1)[1]
    try:
        pk = int(s)
    except ValueError:
        return None
    return pk if 0 < pk <= MAX_PK else None


def client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')

"""
e-doğrula: blacklist API.

Public: /api/blacklist/<idOrSlug>, /api/blacklist/<id>/supports. GET/POST /api/blacklist
        itself is admin only and served by blacklist_collection.
Admin:  /api/admin/blacklist (list, export, CRUD, bulk, support moderation).
"""

import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import ensure_admin, is_admin_request
from directory.csv_export import csv_response
from directory.models import Blacklist, BlacklistSupport
from directory.normalization import clean, parse_bool
from directory.services import blacklist as svc
from directory.validators import validate_choice
from directory.view_utils import (
    client_ip,
    get_request_payload,
    json_error,
    normalize_id,
    paginate,
    parse_ids,
    parse_sort,
    validation_error_response,
)

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = 'Kara liste kaydı bulunamadı'
CSV_HEADER = [
    'id', 'name', 'businessName', 'businessSlug', 'instagramUsername', 'phone',
    'severity', 'status', 'reason', 'reportIds', 'evidenceUrls', 'createdAt',
]


def _ordered(params):
    order = parse_sort(params.get('sort'), svc.SORT_FIELDS, '-createdAt') or ['-created_at']
    return svc.filter_queryset(params).order_by(*order)


def _list_response(params):
    items, meta = paginate(_ordered(params), params, default_limit=20, max_limit=200)
    rows = [b.to_json() for b in items]
    return JsonResponse({
        'success': True,
        'items': rows,
        'blacklist': rows,
        'hasMore': meta['page'] < meta['pages'],
        **meta,
    })


def _create(request):
    try:
        entry = svc.create_entry(
            get_request_payload(request),
            ip=client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        )
    except ValidationError as e:
        return validation_error_response(e)
    except Exception as e:
        logger.exception('Blacklist create: %s', e)
        return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
    return JsonResponse({'success': True, 'blacklist': entry.to_json()}, status=201)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@require_http_methods(['GET'])
def public_blacklist_detail(request, key):
    entry = svc.find_entry(key)
    if entry is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    admin = is_admin_request(request)
    data = entry.to_json(with_supports=admin)
    if not admin:
        data['supports'] = svc.public_supports(entry)
    return JsonResponse({'success': True, 'blacklist': data, 'admin': admin})


@csrf_exempt
@require_http_methods(['POST'])
def public_blacklist_support(request, key):
    """POST { name, contact, comment } -> pending support awaiting moderation."""
    entry = svc.find_entry(key)
    if entry is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    try:
        support = svc.add_support(entry, get_request_payload(request), ip=client_ip(request))
    except ValidationError as e:
        return validation_error_response(e)
    return JsonResponse({
        'success': True,
        'support': {
            'id': str(support.pk),
            'maskedName': svc.mask_name(support.name),
            'comment': support.comment,
            'createdAt': support.created_at.isoformat(),
            'status': support.status,
        },
    }, status=201)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(['GET', 'POST'])
@ensure_admin
def blacklist_collection(request):
    if request.method == 'POST':
        return _create(request)
    return _list_response(request.GET)


@require_http_methods(['GET'])
@ensure_admin
def blacklist_export(request):
    return csv_response(CSV_HEADER, svc.export_rows(_ordered(request.GET)), 'blacklist.csv')


@csrf_exempt
@require_http_methods(['GET', 'PATCH', 'DELETE'])
@ensure_admin
def blacklist_detail(request, key):
    entry = svc.find_entry(key, include_deleted=True)
    if entry is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)

    if request.method == 'DELETE':
        pk = entry.pk
        if parse_bool(request.GET.get('hard')):
            entry.delete()
            logger.info('Blacklist entry hard deleted: id=%s', pk)
        else:
            svc.soft_delete(Blacklist.objects.filter(pk=pk))
        return JsonResponse({'success': True, 'deleted': str(pk)})

    if request.method == 'PATCH':
        try:
            entry = svc.update_entry(entry, get_request_payload(request))
        except ValidationError as e:
            return validation_error_response(e)
        except Exception as e:
            logger.exception('Blacklist update id=%s: %s', entry.pk, e)
            return json_error('SERVER_ERROR', 'Sunucu hatası', 500)

    return JsonResponse({'success': True, 'blacklist': entry.to_json(with_supports=True)})


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def blacklist_bulk(request):
    """POST { ids, op: status|severity|delete, value }"""
    data = get_request_payload(request)
    ids = parse_ids(data.get('ids'))
    op = clean(str(data.get('op') or '')).lower()
    if not ids or not op:
        return json_error('VALIDATION_ERROR', 'ids / op gerekli', 400)
    qs = Blacklist.objects.filter(pk__in=ids)

    if op == 'delete':
        return JsonResponse({'success': True, 'op': op, 'deleted': svc.soft_delete(qs)})

    choices = {'status': Blacklist.Status.values, 'severity': Blacklist.Severity.values}.get(op)
    if choices is None:
        return json_error('VALIDATION_ERROR', 'Geçersiz işlem', 400)
    try:
        value = validate_choice(data.get('value'), choices, field_name=op)
    except ValidationError as e:
        return validation_error_response(e)
    matched = qs.count()
    modified = qs.exclude(**{op: value}).update(**{op: value})
    logger.info('Blacklist bulk %s=%s: matched=%s modified=%s', op, value, matched, modified)
    return JsonResponse({'success': True, 'op': op, 'matched': matched, 'modified': modified})


@require_http_methods(['GET'])
@ensure_admin
def blacklist_supports(request, key):
    entry = svc.find_entry(key, include_deleted=True)
    if entry is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    qs = entry.supports.all()
    status = clean(request.GET.get('status'))
    if status and status != 'all':
        qs = qs.filter(status=status)
    return JsonResponse({'success': True, 'items': [s.to_json() for s in qs]})


@csrf_exempt
@require_http_methods(['GET', 'PATCH', 'DELETE'])
@ensure_admin
def blacklist_support_detail(request, key, sid):
    entry = svc.find_entry(key, include_deleted=True)
    pk = normalize_id(sid)
    support = entry.supports.filter(pk=pk).first() if entry is not None and pk else None
    if support is None:
        return json_error('NOT_FOUND', 'Destek kaydı bulunamadı', 404)

    if request.method == 'DELETE':
        support.delete()
        logger.info('Blacklist support deleted: blacklist=%s support=%s', entry.pk, pk)
        return JsonResponse({'success': True, 'deleted': str(pk)})

    if request.method == 'PATCH':
        body = get_request_payload(request)
        try:
            if 'status' in body:
                support.status = validate_choice(body['status'], BlacklistSupport.Status.values, field_name='status')
        except ValidationError as e:
            return validation_error_response(e)
        for field in ('name', 'contact', 'comment'):
            if field in body:
                setattr(support, field, clean(str(body[field] or '')))
        support.save()

    return JsonResponse({'success': True, 'support': support.to_json()})

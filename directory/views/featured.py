"""
e-doğrula: featured slots.

Public: GET /api/featured (active now), GET /api/featured/export.csv.
Admin:  /api/admin/featured (list, create, update, delete, bulk, reorder).
"""

import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import ensure_admin
from directory.csv_export import csv_response
from directory.models import Featured
from directory.normalization import clean, parse_bool
from directory.services import featured as svc
from directory.view_utils import (
    get_request_payload,
    json_error,
    normalize_id,
    paginate,
    parse_ids,
    parse_sort,
    validation_error_response,
)

logger = logging.getLogger(__name__)


@require_http_methods(['GET'])
def featured_public_list(request):
    rows = [f.to_json() for f in svc.active_now(request.GET)]
    return JsonResponse({'success': True, 'items': rows})


@require_http_methods(['GET'])
def featured_export(request):
    qs = Featured.objects.select_related('business').order_by('order', '-created_at')
    return csv_response(svc.CSV_HEADER, (f.to_json() for f in qs.iterator()), 'featured.csv', always_quote=True)


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@ensure_admin
def featured_collection(request):
    if request.method == 'GET':
        order = parse_sort(request.GET.get('sort'), svc.SORT_FIELDS, svc.DEFAULT_SORT)
        qs = svc.filter_queryset(request.GET).order_by(*order)
        items, meta = paginate(qs, request.GET, default_limit=20, max_limit=200)
        return JsonResponse({'success': True, 'featured': [f.to_json() for f in items], **meta})

    try:
        data = svc.fields_from_payload(get_request_payload(request))
    except ValidationError as e:
        return validation_error_response(e)
    if not data.get('business'):
        return json_error('VALIDATION_ERROR', 'businessId/business gerekli', 400)
    data.setdefault('order', Featured.next_order())
    try:
        item = Featured(**data)
        with transaction.atomic():
            item.save()
    except IntegrityError:
        return json_error('DUPLICATE', 'Bu featured zaten var', 409)
    except Exception as e:
        logger.exception('Featured create: %s', e)
        return json_error('SERVER_ERROR', 'Kaydedilemedi', 500)
    logger.info('Featured created: id=%s business=%s place=%s', item.pk, item.business_id, item.place)
    return JsonResponse({'success': True, 'item': item.to_json()}, status=201)


@csrf_exempt
@require_http_methods(['PATCH', 'DELETE'])
@ensure_admin
def featured_detail(request, featured_id):
    pk = normalize_id(featured_id)
    if pk is None:
        return json_error('INVALID_ID', 'Geçersiz id', 400)
    item = Featured.objects.select_related('business').filter(pk=pk).first()
    if item is None:
        return json_error('NOT_FOUND', 'Bulunamadı', 404)

    if request.method == 'DELETE':
        item.delete()
        logger.info('Featured deleted: id=%s', pk)
        return JsonResponse({'success': True})

    try:
        data = svc.fields_from_payload(get_request_payload(request))
    except ValidationError as e:
        return validation_error_response(e)
    if 'business' in data and data['business'] is None:
        return json_error('VALIDATION_ERROR', 'İşletme bulunamadı', 400)
    for field, value in data.items():
        setattr(item, field, value)
    try:
        with transaction.atomic():
            item.save()
    except IntegrityError:
        return json_error('DUPLICATE', 'Bu featured zaten var', 409)
    except Exception as e:
        logger.exception('Featured update id=%s: %s', pk, e)
        return json_error('SERVER_ERROR', 'Güncellenemedi', 500)
    return JsonResponse({'success': True, 'item': item.to_json()})


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def featured_bulk(request):
    """POST { ids, op: active|delete, value }"""
    data = get_request_payload(request)
    ids = parse_ids(data.get('ids'))
    if not ids:
        return JsonResponse({'success': True, 'updated': 0})
    op = clean(str(data.get('op') or '')).lower()
    qs = Featured.objects.filter(pk__in=ids)
    if op == 'active':
        value = parse_bool(data.get('value'))
        updated = qs.exclude(active=value).update(active=value)
        return JsonResponse({'success': True, 'updated': updated})
    if op == 'delete':
        deleted = qs.count()
        qs.delete()
        logger.info('Featured bulk delete: %s', deleted)
        return JsonResponse({'success': True, 'deleted': deleted})
    return json_error('VALIDATION_ERROR', 'Geçersiz işlem', 400)


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def featured_reorder(request):
    """POST { items: [{id, order}] }"""
    updated = svc.reorder(get_request_payload(request).get('items'))
    return JsonResponse({'success': True, 'updated': updated})

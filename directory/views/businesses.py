"""
e-doğrula: business API.

Public: /api/businesses/search, /by-slug/<slug>, /handle/<handle>, /<idOrSlug>.
Admin:  /api/admin/businesses (list, export, CRUD, cover upload, bulk) and /api/admin/me.
"""

import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import ensure_admin
from directory.csv_export import rows_to_csv_response
from directory.models import UNNAMED_BUSINESS, Business
from directory.normalization import clean
from directory.services import businesses as svc
from directory.services.uploads import UploadError, save_business_files
from directory.validators import validate_uploaded_image
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

NOT_FOUND_MESSAGE = 'Kayıt bulunamadı'
DUPLICATE_MESSAGE = 'Aynı slug / Instagram / telefon ile kayıt zaten var'
BULK_UPDATES = {
    'verify': {'verified': True},
    'unverify': {'verified': False},
    'feature': {'featured': True},
    'unfeature': {'featured': False},
}


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@require_http_methods(['GET'])
def business_search(request):
    """GET /api/businesses/search?q=&type=&limit="""
    limit = svc.parse_search_limit(request.GET.get('limit'))
    try:
        payload = svc.search(request.GET.get('q', ''), request.GET.get('type', ''), limit)
    except Exception as e:
        logger.exception('Business search failed: %s', e)
        return JsonResponse({'success': False, 'status': 'error', 'message': 'Search error'}, status=500)
    return JsonResponse(payload)


@require_http_methods(['GET'])
def business_by_slug(request, slug):
    if not clean(slug):
        return json_error('VALIDATION_ERROR', 'Geçersiz slug', 400)
    business = svc.find_by_slug(slug)
    if business is None:
        return JsonResponse({'success': True, 'status': 'not_found'}, status=404)
    return JsonResponse({'success': True, 'status': 'verified', 'business': svc.public_json(business)})


@require_http_methods(['GET'])
def business_by_handle(request, handle):
    business = svc.find_by_handle(handle)
    if business is None:
        return JsonResponse({'success': True, 'status': 'not_found'}, status=404)
    return JsonResponse({'success': True, 'status': 'verified', 'business': svc.public_json(business)})


@require_http_methods(['GET'])
def business_public_detail(request, key):
    """Id, slug or handle; a blacklist id answers with status=blacklist."""
    business = svc.find_business(key)
    if business is not None:
        return JsonResponse({'success': True, 'status': 'verified', 'business': svc.public_json(business)})
    pk = normalize_id(key) if str(key).isdigit() else None
    black = svc.active_blacklist().filter(pk=pk).first() if pk else None
    if black is not None:
        return JsonResponse({'success': True, 'status': 'blacklist', 'business': black.to_json()})
    return JsonResponse({'success': True, 'status': 'not_found', 'message': 'İşletme bulunamadı'}, status=404)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@require_http_methods(['GET'])
@ensure_admin
def admin_me(request):
    return JsonResponse({'success': True, 'user': getattr(request, 'admin', None)})


def _admin_queryset(params):
    order = parse_sort(params.get('sort'), svc.ADMIN_SORT_FIELDS, '-createdAt') or ['-created_at']
    return svc.filter_admin_queryset(params).order_by(*order)


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@ensure_admin
def business_collection(request):
    if request.method == 'POST':
        return _create_business(request)

    qs = _admin_queryset(request.GET)
    items, meta = paginate(qs, request.GET, default_limit=50, max_limit=200)
    rows = [b.to_json() for b in items]
    if clean(request.GET.get('format')).lower() == 'csv':
        return rows_to_csv_response(rows, 'businesses.csv')
    return JsonResponse({'success': True, 'businesses': rows, 'items': rows, **meta})


def _create_business(request):
    body = get_request_payload(request)
    data = Business.from_payload(body)
    data['name'] = data.get('name') or clean(body.get('title')) or UNNAMED_BUSINESS
    base = clean(body.get('slug')) or data['name'] or data.get('handle') or 'isletme'
    data['slug'] = Business.unique_slug(base)
    try:
        business = Business(**data)
        with transaction.atomic():
            business.save()
    except IntegrityError:
        return json_error('DUPLICATE', DUPLICATE_MESSAGE, 409)
    except Exception as e:
        logger.exception('Admin business create: %s', e)
        return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
    logger.info('Business created by admin: id=%s slug=%s', business.pk, business.slug)
    return JsonResponse({'success': True, 'business': business.to_json()}, status=201)


@require_http_methods(['GET'])
@ensure_admin
def business_export(request):
    rows = [b.to_json() for b in _admin_queryset(request.GET)]
    return rows_to_csv_response(rows, 'businesses-export.csv')


@csrf_exempt
@require_http_methods(['GET', 'PATCH', 'DELETE'])
@ensure_admin
def business_detail(request, key):
    business = svc.find_admin_business(key)
    if business is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)

    if request.method == 'DELETE':
        pk = business.pk
        business.delete()
        logger.info('Business deleted: id=%s', pk)
        return JsonResponse({'success': True, 'deleted': str(pk)})

    if request.method == 'PATCH':
        body = get_request_payload(request)
        data = Business.from_payload(body)
        data.pop('slug', None)
        requested_slug = clean(body.get('slug')) if 'slug' in body else ''
        if requested_slug and requested_slug != business.slug:
            data['slug'] = Business.unique_slug(requested_slug, exclude_pk=business.pk)
        if not data:
            return json_error('VALIDATION_ERROR', 'Güncellenecek alan yok', 400)
        for field, value in data.items():
            setattr(business, field, value)
        if not business.slug:
            business.slug = Business.unique_slug(business.name, exclude_pk=business.pk)
        try:
            with transaction.atomic():
                business.save()
        except IntegrityError:
            return json_error('DUPLICATE', DUPLICATE_MESSAGE, 409)
        except Exception as e:
            logger.exception('Admin business update id=%s: %s', business.pk, e)
            return json_error('SERVER_ERROR', 'Sunucu hatası', 500)

    return JsonResponse({'success': True, 'business': business.to_json()})


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def business_cover(request, key):
    """POST multipart field ``file``: stored under uploads/<slug>/ and put first in the gallery."""
    business = svc.find_admin_business(key)
    if business is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    upload = request.FILES.get('file')
    try:
        validate_uploaded_image(upload, max_size_bytes=settings.BUSINESS_UPLOAD_MAX_MB * 1024 * 1024)
        saved = save_business_files([upload], business.slug or str(business.pk))[0]
    except ValidationError as e:
        return validation_error_response(e)
    except UploadError as e:
        return json_error(e.code, e.message, e.status)
    svc.apply_cover(business, saved['url'])
    business.save()
    logger.info('Business cover set: id=%s url=%s', business.pk, saved['url'])
    return JsonResponse({
        'success': True,
        'business': business.to_json(),
        'file': {'url': saved['url'], 'filename': saved['filename']},
    })


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def business_bulk(request):
    """POST { ids, op: verify|unverify|status|feature|unfeature|delete, value }"""
    data = get_request_payload(request)
    ids = parse_ids(data.get('ids'))
    if not ids:
        return json_error('VALIDATION_ERROR', 'ids gerekli', 400)
    op = clean(str(data.get('op') or '')).lower()
    qs = Business.objects.filter(pk__in=ids)

    if op == 'delete':
        deleted = qs.count()
        qs.delete()
        logger.info('Businesses bulk delete: %s', deleted)
        return JsonResponse({'success': True, 'op': op, 'deleted': deleted})

    update = BULK_UPDATES.get(op)
    if op == 'status':
        value = clean(str(data.get('value') or ''))
        if value in Business.Status.values:
            update = {'status': value}
    if not update:
        return json_error('VALIDATION_ERROR', 'Geçersiz işlem', 400)

    matched = qs.count()
    field, value = next(iter(update.items()))
    modified = qs.exclude(**{field: value}).update(**update)
    return JsonResponse({'success': True, 'op': op, 'matched': matched, 'modified': modified})


"""
e-doğrula: admin applications API (/api/admin/applications).

Current and legacy application rows are served together; see
directory.services.applications for the lookup order.
"""

import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import ensure_admin
from directory.csv_export import csv_response
from directory.normalization import clean
from directory.services import applications as svc
from directory.view_utils import get_request_payload, json_error, validation_error_response

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = 'Başvuru bulunamadı'


def _reviewer(request):
    admin = getattr(request, 'admin', None) or {}
    return admin.get('id') if isinstance(admin, dict) else None


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@ensure_admin
def application_collection(request):
    """GET: filtered list of both tables. POST: create a VerificationRequest."""
    if request.method == 'POST':
        try:
            obj = svc.create_application(get_request_payload(request))
        except ValidationError as e:
            return validation_error_response(e)
        except Exception as e:
            logger.exception('Admin application create: %s', e)
            return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
        return JsonResponse({'application': svc.serialize(obj, svc.SOURCE_VERIFICATION)}, status=201)

    items, meta = svc.list_applications(request.GET)
    return JsonResponse({'applications': items, **meta})


@require_http_methods(['GET'])
@ensure_admin
def application_export(request):
    return csv_response(svc.CSV_HEADER, svc.export_rows(request.GET), 'applications.csv')


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def application_bulk(request):
    """POST { ids, op: status|delete|approve, value }"""
    data = get_request_payload(request)
    ids = data.get('ids')
    ids = ids if isinstance(ids, list) else []
    op = clean(str(data.get('op') or '')).lower()
    if not ids or not op:
        return json_error('VALIDATION_ERROR', 'Geçersiz istek (ids / op eksik).', 400)

    try:
        if op == 'status':
            result = svc.bulk_status(ids, clean(str(data.get('value') or '')) or 'pending')
        elif op == 'delete':
            result = svc.bulk_delete(ids)
        elif op == 'approve':
            result = svc.bulk_approve(ids, _reviewer(request))
        else:
            return json_error('VALIDATION_ERROR', 'Bilinmeyen bulk işlemi.', 400)
    except ValidationError as e:
        return validation_error_response(e)
    except Exception as e:
        logger.exception('Admin application bulk op=%s: %s', op, e)
        return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
    return JsonResponse({'ok': True, 'op': op, **result})


@csrf_exempt
@require_http_methods(['GET', 'PATCH', 'DELETE'])
@ensure_admin
def application_detail(request, app_id):
    obj, source = svc.find_application(app_id)
    if obj is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)

    if request.method == 'DELETE':
        obj.delete()
        logger.info('Application deleted: id=%s source=%s', app_id, source)
        return JsonResponse({'ok': True})

    if request.method == 'PATCH':
        try:
            obj = svc.update_application(obj, source, get_request_payload(request))
        except ValidationError as e:
            return validation_error_response(e)
        except Exception as e:
            logger.exception('Admin application update id=%s: %s', app_id, e)
            return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
        if obj is None:
            return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)

    return JsonResponse({'application': svc.serialize(obj, source)})


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def application_approve(request, app_id):
    obj, source = svc.find_application(app_id)
    if obj is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    try:
        business, already = svc.approve_application(obj, source, _reviewer(request))
    except Exception as e:
        logger.exception('Admin application approve id=%s: %s', app_id, e)
        return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
    return JsonResponse({
        'ok': True,
        'source': source,
        'businessId': str(business.pk),
        'business': business.to_json(),
        'alreadyApproved': already,
    })


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def application_reject(request, app_id):
    obj, source = svc.find_application(app_id)
    if obj is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    data = get_request_payload(request)
    obj = svc.reject_application(obj, source, data.get('reason') or data.get('rejectReason'), _reviewer(request))
    return JsonResponse({'ok': True, 'application': svc.serialize(obj, source)})

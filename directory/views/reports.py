"""
e-doğrula: reports API.

Public: POST /api/report (multipart ``evidence``), GET /api/report/<id> (masked for
non-admins), POST /api/report/<id>/support.
Admin:  GET /api/report and /api/admin/reports (list, export, CRUD, bulk, promote to blacklist).
"""

import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import AuthError, ensure_admin, is_admin_request
from directory.csv_export import csv_response
from directory.models import Report
from directory.normalization import clean
from directory.services import blacklist as blacklist_svc
from directory.services import reports as svc
from directory.services.uploads import UploadError, save_report_files
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

NOT_FOUND_MESSAGE = 'Rapor bulunamadı'


def _find(report_id):
    pk = normalize_id(report_id)
    return Report.objects.filter(pk=pk).first() if pk else None


def _ordered(params):
    order = parse_sort(params.get('sort'), svc.SORT_FIELDS, '-createdAt') or ['-created_at']
    return svc.filter_queryset(params).order_by(*order)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(['GET', 'POST'])
def report_collection(request):
    """GET: admin list. POST: public report with optional evidence files."""
    if request.method == 'GET':
        return admin_report_collection(request)

    try:
        verified = svc.verify_payload(request)
    except AuthError as e:
        return e.response()

    body = get_request_payload(request)
    try:
        evidence = save_report_files(request.FILES.getlist('evidence'))
        report = svc.create_report(
            body,
            evidence,
            ip=client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
            verified=verified,
        )
    except UploadError as e:
        return json_error(e.code, e.message, e.status)
    except ValidationError as e:
        return validation_error_response(e)
    except Exception as e:
        logger.exception('Report create: %s', e)
        return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
    return JsonResponse({'success': True, 'id': str(report.pk), 'report': report.to_json()}, status=201)


@require_http_methods(['GET'])
def report_public_detail(request, report_id):
    if normalize_id(report_id) is None:
        return json_error('INVALID_ID', 'Geçersiz id', 400)
    report = _find(report_id)
    if report is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    admin = is_admin_request(request)
    return JsonResponse({'success': True, 'report': report.to_json(masked=not admin), 'admin': admin})


@csrf_exempt
@require_http_methods(['POST'])
def report_support(request, report_id):
    """Count one supporter per fingerprint; repeated calls leave the count unchanged."""
    pk = normalize_id(report_id)
    if pk is None:
        return json_error('INVALID_ID', 'Geçersiz id', 400)
    fingerprint = svc.support_fingerprint(request, get_request_payload(request))
    updated, count = Report.add_support(pk, fingerprint)
    if not updated and not Report.objects.filter(pk=pk).exists():
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    return JsonResponse({'success': True, 'updated': updated, 'supportCount': count})


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@require_http_methods(['GET'])
@ensure_admin
def admin_report_collection(request):
    items, meta = paginate(_ordered(request.GET), request.GET, default_limit=20, max_limit=100)
    return JsonResponse({
        'success': True,
        'items': [r.to_json() for r in items],
        'hasMore': meta['page'] < meta['pages'],
        **meta,
    })


@require_http_methods(['GET'])
@ensure_admin
def report_export(request):
    return csv_response(svc.CSV_HEADER, svc.export_rows(_ordered(request.GET)), 'reports.csv')


@csrf_exempt
@require_http_methods(['GET', 'PATCH', 'DELETE'])
@ensure_admin
def report_detail(request, report_id):
    report = _find(report_id)
    if report is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)

    if request.method == 'DELETE':
        pk = report.pk
        report.delete()
        logger.info('Report deleted: id=%s', pk)
        return JsonResponse({'success': True, 'deleted': str(pk)})

    if request.method == 'PATCH':
        try:
            report = svc.update_report(report, get_request_payload(request))
        except ValidationError as e:
            return validation_error_response(e)
        except Exception as e:
            logger.exception('Report update id=%s: %s', report.pk, e)
            return json_error('SERVER_ERROR', 'Sunucu hatası', 500)

    data = report.to_json()
    data['blacklistIds'] = [str(pk) for pk in report.blacklist_entries.values_list('pk', flat=True)]
    return JsonResponse({'success': True, 'report': data})


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def report_bulk(request):
    """POST { ids, op: status|delete, value }"""
    data = get_request_payload(request)
    ids = parse_ids(data.get('ids'))
    op = clean(str(data.get('op') or '')).lower()
    if not ids or not op:
        return json_error('VALIDATION_ERROR', 'ids / op gerekli', 400)
    qs = Report.objects.filter(pk__in=ids)

    if op == 'delete':
        deleted = qs.count()
        qs.delete()
        logger.info('Reports bulk delete: %s', deleted)
        return JsonResponse({'success': True, 'op': op, 'deleted': deleted})
    if op != 'status':
        return json_error('VALIDATION_ERROR', 'Geçersiz işlem', 400)
    try:
        value = validate_choice(data.get('value'), Report.Status.values, field_name='status')
    except ValidationError as e:
        return validation_error_response(e)
    matched = qs.count()
    modified = qs.exclude(status=value).update(status=value)
    return JsonResponse({'success': True, 'op': op, 'matched': matched, 'modified': modified})


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def report_to_blacklist(request, report_id):
    """Promote a report: reuse its live blacklist entry or create one linked to it."""
    report = _find(report_id)
    if report is None:
        return json_error('NOT_FOUND', NOT_FOUND_MESSAGE, 404)
    try:
        entry, created = blacklist_svc.promote_report(report, get_request_payload(request))
    except ValidationError as e:
        return validation_error_response(e)
    except Exception as e:
        logger.exception('Report promote id=%s: %s', report.pk, e)
        return json_error('SERVER_ERROR', 'Sunucu hatası', 500)
    return JsonResponse(
        {'success': True, 'created': created, 'blacklist': entry.to_json(), 'report': report.to_json()},
        status=201 if created else 200,
    )

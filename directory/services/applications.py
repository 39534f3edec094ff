"""
e-doğrula: application moderation. Single place for listing, lookup and status changes.

Applications live in two tables: VerificationRequest (current form) and the
legacy ApplyRequest. Lookups probe the current table first, then the legacy
one. Legacy rows are addressed as ``apply_<pk>`` in API output so a prefixed
id always resolves to the right table.
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from directory.models import (
    LEGACY_FOLDER_RE,
    UNNAMED_BUSINESS,
    ApplyRequest,
    Business,
    VerificationRequest,
)
from directory.normalization import clean
from directory.view_utils import normalize_id, parse_day_bounds, parse_pagination, parse_sort

logger = logging.getLogger(__name__)

SOURCE_VERIFICATION = 'verification'
SOURCE_APPLY = 'apply'
LEGACY_PREFIX = 'apply'

SORT_FIELDS = {'createdAt': 'created_at', 'updatedAt': 'updated_at'}
DEFAULT_SORT = '-createdAt'

VERIFICATION_SEARCH_FIELDS = (
    'name', 'trade_title', 'business_name', 'legal_name', 'instagram', 'instagram_username',
    'instagram_url', 'email', 'phone', 'landline', 'phone_mobile', 'phone_fixed',
    'city', 'district', 'address',
)
APPLY_SEARCH_FIELDS = (
    'business_name', 'legal_name', 'instagram', 'email', 'phone_mobile', 'phone_fixed',
    'city', 'district', 'address',
)

CSV_HEADER = [
    'id', 'name', 'tradeTitle', 'phone', 'email', 'instagram',
    'city', 'district', 'status', 'createdAt', 'source',
]

# API key -> VerificationRequest field
VERIFICATION_FIELDS = {
    'name': 'name',
    'tradeTitle': 'trade_title',
    'type': 'type',
    'instagramUsername': 'instagram_username',
    'instagramUrl': 'instagram_url',
    'instagram': 'instagram',
    'phone': 'phone',
    'landline': 'landline',
    'phoneMobile': 'phone_mobile',
    'phoneFixed': 'phone_fixed',
    'email': 'email',
    'website': 'website',
    'city': 'city',
    'district': 'district',
    'address': 'address',
    'note': 'note',
    'documents': 'documents',
    'docs': 'docs',
    'images': 'images',
    'status': 'status',
    'rejectReason': 'reject_reason',
    'businessName': 'business_name',
    'legalName': 'legal_name',
}

# API key -> ApplyRequest field; first key present wins
LEGACY_FIELDS = {
    'business_name': ('name', 'businessName'),
    'legal_name': ('tradeTitle', 'legalName'),
    'type': ('type',),
    'phone_mobile': ('phone', 'phoneMobile'),
    'phone_fixed': ('landline', 'phoneFixed'),
    'instagram': ('instagram', 'instagramUrl', 'instagramUsername'),
    'website': ('website',),
    'email': ('email',),
    'city': ('city',),
    'district': ('district',),
    'address': ('address',),
    'note': ('note',),
    'status': ('status',),
    'rejection_reason': ('rejectReason', 'rejectionReason'),
    'reviewer_note': ('reviewerNote',),
}


def split_id(raw_id):
    """'apply_12' -> ('apply', 12); '12' -> ('', 12); junk -> ('', None)."""
    s = str(raw_id if raw_id is not None else '').strip()
    prefix = s.rsplit('_', 1)[0].lower() if '_' in s else ''
    return prefix, normalize_id(s)


def public_id(obj, source):
    return f'{LEGACY_PREFIX}_{obj.pk}' if source == SOURCE_APPLY else str(obj.pk)


def group_ids(raw_ids):
    """Split a mixed id list into primary keys per source."""
    groups = {SOURCE_VERIFICATION: [], SOURCE_APPLY: []}
    for raw in raw_ids or []:
        prefix, pk = split_id(raw)
        if pk is None:
            continue
        source = SOURCE_APPLY if prefix == LEGACY_PREFIX else SOURCE_VERIFICATION
        if pk not in groups[source]:
            groups[source].append(pk)
    return groups


def model_for(source):
    return ApplyRequest if source == SOURCE_APPLY else VerificationRequest


def find_application(raw_id):
    """
    Resolve an application id. Unprefixed ids probe VerificationRequest then
    ApplyRequest; ``apply_<pk>`` goes straight to the legacy table.
    Returns (obj, source) or (None, None).
    """
    prefix, pk = split_id(raw_id)
    if pk is None:
        return None, None
    if prefix != LEGACY_PREFIX:
        obj = VerificationRequest.objects.filter(pk=pk).first()
        if obj is not None:
            return obj, SOURCE_VERIFICATION
    if prefix in ('', LEGACY_PREFIX):
        obj = ApplyRequest.objects.filter(pk=pk).first()
        if obj is not None:
            return obj, SOURCE_APPLY
    return None, None


def folder_from_paths(paths):
    for path in paths:
        match = LEGACY_FOLDER_RE.match(str(path or ''))
        if match:
            return match.group(1)
    return None


def _doc_paths(documents):
    for doc in documents or []:
        if isinstance(doc, dict):
            yield doc.get('path') or doc.get('url') or ''
        else:
            yield str(doc or '')


def _is_pdf(path):
    return str(path).lower().endswith('.pdf')


def legacy_summary(obj):
    """{docCount, imageCount, folder} for the admin list, whatever the source table."""
    if isinstance(obj, ApplyRequest):
        return {
            'docCount': obj.doc_count if obj.doc_count is not None else len(obj.docs or []),
            'imageCount': obj.image_count if obj.image_count is not None else len(obj.images or []),
            'folder': obj.folder_id,
        }
    docs = list(obj.docs or [])
    images = list(obj.images or [])
    if not docs and not images:
        paths = list(_doc_paths(obj.documents))
        docs = [p for p in paths if _is_pdf(p)]
        images = [p for p in paths if not _is_pdf(p)]
    return {
        'docCount': len(docs),
        'imageCount': len(images),
        'folder': folder_from_paths(docs + images),
    }


def serialize(obj, source):
    data = obj.to_json()
    data['_id'] = data['id'] = public_id(obj, source)
    data['_source'] = source
    data['_legacy'] = legacy_summary(obj)
    return data


def sort_terms(params):
    return parse_sort(params.get('sort'), SORT_FIELDS, DEFAULT_SORT)[:1] or ['-created_at']


def filter_queryset(qs, params, search_fields):
    """Apply status / q / from / to filters shared by both tables."""
    status = clean(params.get('status'))
    if status and status != 'all':
        qs = qs.filter(status=status)

    q = clean(params.get('q'))
    if q:
        cond = Q()
        for field in search_fields:
            cond |= Q(**{f'{field}__icontains': q})
        pk = normalize_id(q)
        if pk is not None:
            cond |= Q(pk=pk)
        qs = qs.filter(cond)

    start, end = parse_day_bounds(params.get('from'), params.get('to'))
    if start:
        qs = qs.filter(created_at__gte=start)
    if end:
        qs = qs.filter(created_at__lte=end)
    return qs


def filtered_querysets(params):
    order = sort_terms(params)
    primary = filter_queryset(VerificationRequest.objects.all(), params, VERIFICATION_SEARCH_FIELDS)
    legacy = filter_queryset(ApplyRequest.objects.all(), params, APPLY_SEARCH_FIELDS)
    return primary.order_by(*order, '-pk'), legacy.order_by(*order, '-pk'), order[0]


def _merge(primary_rows, legacy_rows, term):
    rows = [(o, SOURCE_VERIFICATION) for o in primary_rows] + [(o, SOURCE_APPLY) for o in legacy_rows]
    field = term.lstrip('-')
    rows.sort(key=lambda row: getattr(row[0], field), reverse=term.startswith('-'))
    return rows


def list_applications(params):
    """One page of both tables merged by the requested sort. Returns (items, meta)."""
    page, limit, offset = parse_pagination(params, default_limit=20, max_limit=200)
    primary, legacy, term = filtered_querysets(params)
    total = primary.count() + legacy.count()
    window = offset + limit
    rows = _merge(primary[:window], legacy[:window], term)[offset:window]
    pages = max(1, -(-total // limit))
    return [serialize(o, s) for o, s in rows], {'total': total, 'page': page, 'pages': pages, 'limit': limit}


def export_rows(params):
    """Dict rows for the applications CSV, all matches, same order as the list."""
    primary, legacy, term = filtered_querysets(params)
    out = []
    for obj, source in _merge(primary, legacy, term):
        data = serialize(obj, source)
        out.append({
            'id': data['_id'],
            'name': data['name'],
            'tradeTitle': data['tradeTitle'],
            'phone': data['phone'],
            'email': data['email'],
            'instagram': data['instagramUrl'] or data['instagramUsername'],
            'city': data['city'],
            'district': data['district'],
            'status': data['status'],
            'createdAt': data['createdAt'] or '',
            'source': source,
        })
    return out


def pick_application_fields(body):
    """Writable VerificationRequest fields from an API body (only keys present)."""
    data = {}
    for key, field in VERIFICATION_FIELDS.items():
        if key in body:
            data[field] = body[key]
    if 'status' in data and data['status'] not in VerificationRequest.Status.values:
        raise ValidationError('Geçersiz durum', code='INVALID_STATUS')
    return data


def pick_legacy_fields(body):
    data = {}
    for field, keys in LEGACY_FIELDS.items():
        for key in keys:
            if key in body:
                data[field] = body[key]
                break
    if 'status' in data and data['status'] not in ApplyRequest.Status.values:
        raise ValidationError('Geçersiz durum', code='INVALID_STATUS')
    return data


def create_application(body):
    data = pick_application_fields(body)
    data.setdefault('status', VerificationRequest.Status.PENDING)
    obj = VerificationRequest(**data)
    obj.save()
    logger.info('Application created by admin: id=%s', obj.pk)
    return obj


def update_application(obj, source, body):
    """Partial update; current rows go through the partial normalizer."""
    if source == SOURCE_VERIFICATION:
        return VerificationRequest.apply_update(obj.pk, pick_application_fields(body))
    for field, value in pick_legacy_fields(body).items():
        setattr(obj, field, value if value is not None else '')
    obj.save()
    return obj


def _image_urls(obj):
    if isinstance(obj, ApplyRequest):
        return list(obj.images or [])
    urls = []
    for doc in obj.to_json()['documents']:
        ref = doc.get('url') or doc.get('path') or ''
        if ref and not _is_pdf(ref) and 'pdf' not in str(doc.get('mimetype') or ''):
            urls.append(ref)
    return urls


def business_payload_from_application(obj):
    """Business upsert payload built from an application's canonical view."""
    data = obj.to_json()
    name = clean(data['name']) or clean(data['tradeTitle']) or UNNAMED_BUSINESS
    phone = data['phone'] or data['landline']
    payload = {
        'name': name,
        'type': data['type'] or None,
        'instagramUsername': data['instagramUsername'] or None,
        'instagramUrl': data['instagramUrl'] or None,
        'phone': phone or None,
        'phones': [p for p in (data['phone'], data['landline']) if p],
        'email': data['email'] or None,
        'website': data['website'] or None,
        'address': data['address'] or None,
        'city': data['city'] or None,
        'district': data['district'] or None,
        'desc': data['note'] or None,
        'images': _image_urls(obj),
        'verified': True,
        'status': Business.Status.APPROVED,
    }
    return {k: v for k, v in payload.items() if v is not None}


def _reviewer_id(reviewer_id):
    if reviewer_id is None:
        return None
    pk = normalize_id(reviewer_id)
    if pk is not None and get_user_model().objects.filter(pk=pk).exists():
        return pk
    return None


def approve_application(obj, source, reviewer_id=None):
    """
    Upsert the Business for an application and link it.
    Returns (business, already_approved); a second call is a no-op.
    """
    if obj.status == 'approved' and obj.business_id:
        logger.info('Application already approved: id=%s business=%s', public_id(obj, source), obj.business_id)
        return obj.business, True

    with transaction.atomic():
        business, created = Business.upsert_by_natural_keys(business_payload_from_application(obj))
        obj.status = 'approved'
        obj.business = business
        obj.reviewed_at = timezone.now()
        obj.reviewed_by_id = _reviewer_id(reviewer_id)
        obj.save()

    logger.info(
        'Application approved: id=%s business=%s created=%s',
        public_id(obj, source), business.pk, created,
    )
    return business, False


def reject_application(obj, source, reason='', reviewer_id=None):
    obj.status = 'rejected'
    if source == SOURCE_APPLY:
        obj.rejection_reason = clean(reason)
    else:
        obj.reject_reason = clean(reason)
    obj.reviewed_at = timezone.now()
    obj.reviewed_by_id = _reviewer_id(reviewer_id)
    obj.save()
    logger.info('Application rejected: id=%s', public_id(obj, source))
    return obj


def bulk_status(raw_ids, value):
    if value not in VerificationRequest.Status.values:
        raise ValidationError('Geçersiz durum', code='INVALID_STATUS')
    matched = modified = 0
    now = timezone.now()
    for source, pks in group_ids(raw_ids).items():
        if not pks:
            continue
        qs = model_for(source).objects.filter(pk__in=pks)
        matched += qs.count()
        modified += qs.exclude(status=value).update(status=value, updated_at=now)
    logger.info('Applications bulk status=%s matched=%s modified=%s', value, matched, modified)
    return {'matched': matched, 'modified': modified}


def bulk_delete(raw_ids):
    deleted = 0
    for source, pks in group_ids(raw_ids).items():
        if not pks:
            continue
        count, _ = model_for(source).objects.filter(pk__in=pks).delete()
        deleted += count
    logger.info('Applications bulk delete: deleted=%s', deleted)
    return {'deleted': deleted}


def bulk_approve(raw_ids, reviewer_id=None):
    results = []
    approved = 0
    for source, pks in group_ids(raw_ids).items():
        for obj in model_for(source).objects.filter(pk__in=pks):
            business, already = approve_application(obj, source, reviewer_id)
            approved += 0 if already else 1
            results.append({
                'id': public_id(obj, source),
                'businessId': str(business.pk),
                'alreadyApproved': already,
            })
    return {'approved': approved, 'results': results}

"""
e-doğrula: blacklist entries. Payload mapping, business linking, list filters
and promotion of a report into a blacklist entry.
"""

import logging
import re

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q

from directory.models import Blacklist, BlacklistSupport, Report
from directory.normalization import clean, uniq_strings
from directory.services.businesses import find_business
from directory.validators import parse_datetime_value, validate_choice
from directory.view_utils import normalize_id, parse_day_bounds, parse_ids

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'createdAt': 'created_at', 'updatedAt': 'updated_at', 'severity': 'severity',
    'status': 'status', 'businessName': 'business_name', 'name': 'name',
}
SEARCH_FIELDS = (
    'name', 'business_name', 'business_slug', 'instagram_username', 'instagram_url',
    'phone', 'phone_digits', 'reason', 'desc', 'notes',
)

TEXT_FIELDS = {
    'name': ('name',),
    'business_name': ('businessName',),
    'business_slug': ('businessSlug', 'slug'),
    'instagram_username': ('instagramUsername', 'instagram'),
    'instagram_url': ('instagramUrl',),
    'phone': ('phone',),
    'desc': ('desc', 'description'),
    'reason': ('reason', 'note'),
    'notes': ('notes',),
    'source': ('source',),
}
SPLIT_RE = re.compile(r'[\n,;]+')


def split_list(value):
    """List input or a newline/comma separated string -> unique trimmed strings."""
    if isinstance(value, str):
        value = SPLIT_RE.split(value)
    return uniq_strings(value if isinstance(value, (list, tuple)) else [])


def fields_from_payload(body, partial=False):
    """
    Map an API body to Blacklist fields. Returns (fields, report_ids);
    report_ids is None when the body does not mention reports.
    """
    data = {}
    for field, keys in TEXT_FIELDS.items():
        for key in keys:
            if key in body:
                data[field] = clean(str(body[key] if body[key] is not None else ''))
                break
    if 'severity' in body:
        data['severity'] = validate_choice(body['severity'], Blacklist.Severity.values, field_name='severity')
    if 'status' in body:
        data['status'] = validate_choice(body['status'], Blacklist.Status.values, field_name='status')
    if 'evidenceUrls' in body:
        data['evidence_urls'] = split_list(body['evidenceUrls'])
    if 'fingerprints' in body and isinstance(body['fingerprints'], list):
        data['fingerprints'] = body['fingerprints']
    if 'expiresAt' in body:
        data['expires_at'] = parse_datetime_value(body['expiresAt'], field_name='expiresAt')

    if not partial and not data.get('reason') and data.get('desc'):
        data['reason'] = data['desc']
    if not partial and not data.get('desc') and data.get('reason'):
        data['desc'] = data['reason']

    business_key = body.get('businessId') or body.get('businessSlug') or body.get('slug')
    if business_key:
        business = find_business(business_key)
        if business is not None:
            data['business'] = business
            data['business_slug'] = business.slug
            data['business_name'] = data.get('business_name') or business.name

    report_ids = parse_ids(split_list(body['reportIds'])) if 'reportIds' in body else None
    return data, report_ids


def create_entry(body, *, ip='', user_agent='', default_status=Blacklist.Status.OPEN):
    data, report_ids = fields_from_payload(body)
    data.setdefault('status', default_status)
    data['source'] = data.get('source') or 'admin'
    if not data.get('name'):
        data['name'] = data.get('business_name') or ''
    with transaction.atomic():
        entry = Blacklist(created_by_ip=ip, user_agent=user_agent[:500], **data)
        entry.save()
        if report_ids:
            entry.reports.set(Report.objects.filter(pk__in=report_ids))
    logger.info('Blacklist entry created: id=%s source=%s', entry.pk, entry.source)
    return entry


def update_entry(entry, body):
    data, report_ids = fields_from_payload(body, partial=True)
    if not data and report_ids is None:
        raise ValidationError('Güncellenecek alan yok', code='VALIDATION_ERROR')
    with transaction.atomic():
        for field, value in data.items():
            setattr(entry, field, value)
        entry.save()
        if report_ids is not None:
            entry.reports.set(Report.objects.filter(pk__in=report_ids))
    return entry


def find_entry(key, include_deleted=False):
    """Numeric id or business slug."""
    qs = Blacklist.objects.all() if include_deleted else Blacklist.objects.filter(is_deleted=False)
    key = clean(str(key or ''))
    if key.isdigit():
        pk = normalize_id(key)
        return qs.filter(pk=pk).first() if pk else None
    return qs.filter(business_slug=key).exclude(business_slug='').first() if key else None


def filter_queryset(params):
    qs = Blacklist.objects.filter(is_deleted=False)
    status = clean(params.get('status'))
    if status and status != 'all':
        qs = qs.filter(status=status)
    severity = clean(params.get('severity'))
    if severity and severity != 'all':
        qs = qs.filter(severity=severity)
    slug = clean(params.get('slug'))
    if slug:
        qs = qs.filter(business_slug=slug)
    q = clean(params.get('q'))
    if q:
        cond = Q()
        for field in SEARCH_FIELDS:
            cond |= Q(**{f'{field}__icontains': q.lstrip('@')})
        qs = qs.filter(cond)
    start, end = parse_day_bounds(params.get('from'), params.get('to'))
    if start:
        qs = qs.filter(created_at__gte=start)
    if end:
        qs = qs.filter(created_at__lte=end)
    if clean(str(params.get('onlyWithReports') or '')).lower() in ('1', 'true'):
        qs = qs.annotate(report_total=Count('reports')).filter(report_total__gt=0)
    return qs


def export_rows(qs):
    for entry in qs.iterator():
        row = entry.to_json()
        row['reportIds'] = ','.join(row['reportIds'])
        row['evidenceUrls'] = ' '.join(row['evidenceUrls'])
        yield row


def soft_delete(entries):
    count = entries.filter(is_deleted=False).update(is_deleted=True, status=Blacklist.Status.REMOVED)
    logger.info('Blacklist soft delete: %s', count)
    return count


def add_support(entry, body, ip=''):
    comment = clean(body.get('comment'))[:4000]
    if not comment:
        raise ValidationError('Lütfen kısaca deneyiminizi yazın.', code='VALIDATION_ERROR')
    support = BlacklistSupport.objects.create(
        blacklist=entry,
        name=clean(body.get('name'))[:160] or 'Anonim',
        contact=clean(body.get('contact'))[:160],
        comment=comment,
        created_by_ip=ip,
    )
    logger.info('Blacklist support added: blacklist=%s support=%s', entry.pk, support.pk)
    return support


def mask_name(name):
    parts = clean(name).split()
    if not parts:
        return 'Anonim'
    return ' '.join(p[0] + '*' * max(1, len(p) - 1) for p in parts)


def public_supports(entry):
    visible = entry.supports.exclude(status__in=[BlacklistSupport.Status.REJECTED, BlacklistSupport.Status.SPAM])
    return [
        {'id': str(s.pk), 'maskedName': mask_name(s.name), 'comment': s.comment, 'createdAt': s.created_at.isoformat()}
        for s in visible
    ]


def promote_report(report, body=None):
    """Create (or reuse) a blacklist entry for a report and link both ways."""
    body = body or {}
    existing = report.blacklist_entries.filter(is_deleted=False).first()
    if existing is not None:
        return existing, False
    payload = {
        'name': report.name,
        'instagramUsername': report.instagram_username,
        'instagramUrl': report.instagram_url,
        'phone': report.phone,
        'desc': report.desc,
        'evidenceUrls': list(report.evidence_files or []),
        'source': 'report',
        **body,
    }
    entry = create_entry(payload, default_status=Blacklist.Status.ACTIVE)
    entry.reports.add(report)
    if report.status == Report.Status.OPEN:
        report.status = Report.Status.REVIEWING
        report.save(update_fields=['status', 'updated_at'])
    logger.info('Report promoted to blacklist: report=%s blacklist=%s', report.pk, entry.pk)
    return entry, True

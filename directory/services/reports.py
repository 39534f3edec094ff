"""
e-doğrula: abuse reports. Email-verification token check, creation and list filters.
"""

import hashlib
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import Q

from directory.auth import AuthError, decode_token
from directory.models import Report
from directory.normalization import clean
from directory.services.otp import VERIFY_SUBJECT
from directory.view_utils import client_ip

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'createdAt': 'created_at', 'updatedAt': 'updated_at', 'status': 'status',
    'supportCount': 'support_count', 'name': 'name',
}
SEARCH_FIELDS = ('name', 'instagram_username', 'instagram_url', 'phone', 'desc', 'reporter_email')
CSV_HEADER = [
    'id', 'name', 'instagramUsername', 'instagramUrl', 'phone', 'status',
    'supportCount', 'reporterEmail', 'reporterName', 'evidenceFiles', 'createdAt', 'desc',
]


def verify_payload(request):
    """
    Decoded ``x-verify-token`` payload, or None when absent and not required.
    Raises AuthError VERIFY_REQUIRED / VERIFY_INVALID.
    """
    token = clean(request.headers.get('x-verify-token'))
    if not token:
        if settings.REPORT_REQUIRE_VERIFY:
            raise AuthError('VERIFY_REQUIRED', 'E-posta doğrulaması gerekli', 401)
        return None
    try:
        payload = decode_token(token)
    except AuthError as e:
        if e.code == 'SERVER_MISCONFIG':
            raise
        logger.info('Report verify token rejected: %s', e.code)
        raise AuthError('VERIFY_INVALID', 'Doğrulama anahtarı geçersiz', 401)
    if payload.get('sub') != VERIFY_SUBJECT:
        raise AuthError('VERIFY_INVALID', 'Doğrulama anahtarı geçersiz', 401)
    return payload


def create_report(body, evidence, *, ip='', user_agent='', verified=None):
    data = Report.from_payload({**body, 'evidenceFiles': evidence})
    if not data['consent']:
        raise ValidationError('Yasal sorumluluk onayını işaretlemeniz gerekiyor.', code='CONSENT_REQUIRED')
    if not clean(data.get('name')) or not clean(data.get('desc')):
        raise ValidationError('Lütfen işletme adı ve açıklama alanlarını doldurun.', code='VALIDATION_ERROR')
    data.pop('status', None)
    if verified and verified.get('email'):
        data['verified_email'] = verified['email']
    report = Report(created_by_ip=ip, user_agent=user_agent[:500], **data)
    report.save()
    logger.info('Report created: id=%s evidence=%s', report.pk, len(report.evidence_files))
    return report


def filter_queryset(params):
    qs = Report.objects.all()
    status = clean(params.get('status'))
    if status and status != 'all':
        qs = qs.filter(status=status)
    q = clean(params.get('q'))[:120]
    if q:
        cond = Q()
        for field in SEARCH_FIELDS:
            cond |= Q(**{f'{field}__icontains': q})
        qs = qs.filter(cond)
    return qs


def export_rows(qs):
    """CSV rows streamed from the queryset; evidence URLs space separated."""
    for report in qs.iterator():
        row = report.to_json()
        row['evidenceFiles'] = ' '.join(row['evidenceFiles'])
        yield row


def update_report(report, body):
    data = Report.from_payload(body)
    # from_payload always yields consent/evidence; only keep what the body names
    if 'consent' not in body:
        data.pop('consent')
    if not any(k in body for k in ('evidenceFiles', 'evidence', 'files')):
        data.pop('evidence_files')
    if 'status' in body and body['status'] not in Report.Status.values:
        raise ValidationError('Geçersiz durum', code='INVALID_STATUS')
    if not data:
        raise ValidationError('Güncellenecek alan yok', code='VALIDATION_ERROR')
    for field, value in data.items():
        setattr(report, field, value)
    report.save()
    return report


def support_fingerprint(request, body):
    """Client-supplied fingerprint, else a hash of ip + user agent."""
    given = clean(str(body.get('fingerprint') or ''))[:128]
    if given:
        return given
    agent = request.META.get('HTTP_USER_AGENT', '')
    return hashlib.sha1(f'{client_ip(request)}|{agent}'.encode('utf-8')).hexdigest()

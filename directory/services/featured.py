"""
e-doğrula: featured slots. Legacy ``status``/``placement`` inputs are mapped onto
active + date window; responses carry the legacy shape from Featured.to_json().
"""

import logging

from django.db.models import Q
from django.utils import timezone

from directory.models import Business, Featured
from directory.normalization import clean, parse_bool
from directory.validators import parse_datetime_value
from directory.view_utils import normalize_id

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'order': 'order', 'createdAt': 'created_at', 'updatedAt': 'updated_at',
    'startAt': 'start_at', 'endAt': 'end_at', 'place': 'place', 'type': 'type',
}
DEFAULT_SORT = 'order,-createdAt'
INACTIVE_STATUSES = ('draft', 'archived', 'hidden')
CSV_HEADER = [
    'place', 'type', 'order', 'active', 'startAt', 'endAt', 'businessId', 'businessSlug',
    'businessName', 'title', 'subtitle', 'imageUrl', 'href', 'createdAt',
]


def status_to_active(status):
    s = clean(status).lower()
    if s == 'active':
        return True
    if s in INACTIVE_STATUSES:
        return False
    return None


def fields_from_payload(body):
    """API body -> Featured fields. Unknown or derived keys are ignored."""
    data = {}
    business_key = body.get('business') or body.get('businessId') or body.get('business_id')
    if business_key is not None:
        pk = normalize_id(business_key)
        data['business'] = Business.objects.filter(pk=pk).first() if pk else None
    if 'place' in body:
        data['place'] = clean(str(body['place'] or ''))
    type_value = body.get('type') or body.get('placement')
    if type_value is not None:
        data['type'] = clean(str(type_value))
    if body.get('order') not in (None, ''):
        try:
            data['order'] = int(body['order'])
        except (TypeError, ValueError):
            data['order'] = 0
    if 'status' in body:
        active = status_to_active(body['status'])
        if active is not None:
            data['active'] = active
    if 'active' in body and body['active'] is not None:
        data['active'] = parse_bool(body['active'])
    if 'startAt' in body:
        data['start_at'] = parse_datetime_value(body['startAt'], field_name='startAt')
    if 'endAt' in body:
        data['end_at'] = parse_datetime_value(body['endAt'], field_name='endAt')
    return data


def filter_queryset(params):
    qs = Featured.objects.select_related('business')
    q = clean(params.get('q'))[:120]
    if q:
        qs = qs.filter(
            Q(place__icontains=q) | Q(type__icontains=q)
            | Q(business__name__icontains=q) | Q(business__slug__icontains=q)
            | Q(business__instagram_username__icontains=q) | Q(business__phone__icontains=q)
        )
    status = clean(params.get('status')).lower()
    if status and status != 'all':
        now = timezone.now()
        if status == 'scheduled':
            qs = qs.filter(active=True, start_at__gt=now)
        elif status == 'expired':
            qs = qs.filter(active=True, end_at__lt=now)
        else:
            active = status_to_active(status)
            if active is not None:
                qs = qs.filter(active=active)
    place = clean(params.get('place'))
    if place and place != 'all':
        qs = qs.filter(place=place.lower())
    type_value = clean(params.get('type') or params.get('placement'))
    if type_value and type_value != 'all':
        qs = qs.filter(type=type_value.lower())
    return qs


def active_now(params):
    qs = Featured.objects.select_related('business').filter(Featured.active_now_q())
    place = clean(params.get('place'))
    if place:
        qs = qs.filter(place=place.lower())
    type_value = clean(params.get('type') or params.get('placement'))
    if type_value:
        qs = qs.filter(type=type_value.lower())
    return qs.order_by('order', '-created_at')


def reorder(items):
    """[{id, order}] -> number of rows updated; unknown ids are skipped."""
    updated = 0
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        pk = normalize_id(item.get('id'))
        if pk is None:
            continue
        try:
            order = int(item.get('order') or 0)
        except (TypeError, ValueError):
            order = 0
        updated += Featured.objects.filter(pk=pk).update(order=order)
    logger.info('Featured reorder: %s rows', updated)
    return updated

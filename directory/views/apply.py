"""
e-doğrula: public application form, POST /api/apply.

Accepts JSON, urlencoded or multipart bodies with Turkish and English field
aliases. Attachments go through services.uploads.save_apply_files.
"""

import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.models import VerificationRequest
from directory.normalization import INSTAGRAM_LINK_RE, SCHEME_RE, clean, parse_consent
from directory.services.uploads import UploadError, save_apply_files
from directory.validators import validate_business_name, validate_terms
from directory.view_utils import get_request_payload, json_error, validation_error_response

logger = logging.getLogger(__name__)

ALIASES = {
    'business_name': ('businessName', 'business', 'name', 'isletme', 'firma', 'company', 'companyName', 'title'),
    'legal_name': ('legalName', 'unvan', 'ticariUnvan', 'legal', 'tradeTitle'),
    'type': ('type', 'tur', 'category'),
    'address': ('address', 'adres'),
    'city': ('city', 'il'),
    'district': ('district', 'ilce'),
    'phone_mobile': ('phoneMobile', 'mobile', 'telefon', 'gsm', 'phone'),
    'phone_fixed': ('phoneFixed', 'sabit', 'tel', 'landline'),
    'instagram': ('instagram', 'ig', 'instagramUrl', 'instagramHandle', 'instagramUsername'),
    'website': ('website', 'web', 'site', 'url'),
    'email': ('email', 'mail'),
    'note': ('note', 'desc', 'description', 'aciklama'),
}
TERMS_KEYS = ('termsAccepted', 'terms', 'acceptTerms', 'accepted', 'agree', 'kvkk', 'policy')
NEXT_MESSAGE = 'Başvurun alındı, değerlendirilmeye alınmıştır.'


def pick_first(body, keys):
    for key in keys:
        value = body.get(key)
        if value not in (None, ''):
            return clean(str(value))
    return ''


def split_instagram(value):
    """A link goes to instagram_url, anything else is treated as a username."""
    if not value:
        return {}
    if INSTAGRAM_LINK_RE.search(value) or SCHEME_RE.match(value):
        return {'instagram_url': value, 'instagram': value}
    return {'instagram_username': value}


def _uploaded_files(request):
    files = []
    for key in request.FILES:
        files.extend(request.FILES.getlist(key))
    return files


@csrf_exempt
@require_http_methods(['POST'])
def apply(request):
    body = get_request_payload(request)
    fields = {field: pick_first(body, keys) for field, keys in ALIASES.items()}
    try:
        name = validate_business_name(fields['business_name'])
        validate_terms(any(parse_consent(body.get(k)) for k in TERMS_KEYS))
    except ValidationError as e:
        return validation_error_response(e)

    try:
        stored = save_apply_files(_uploaded_files(request))
    except UploadError as e:
        return json_error(e.code, e.message, e.status)

    try:
        obj = VerificationRequest(
            name=name,
            trade_title=fields['legal_name'],
            type=fields['type'],
            address=fields['address'],
            city=fields['city'],
            district=fields['district'],
            phone=fields['phone_mobile'],
            landline=fields['phone_fixed'],
            website=fields['website'],
            email=fields['email'],
            note=fields['note'],
            docs=stored.docs,
            images=stored.images,
            status=VerificationRequest.Status.PENDING,
            **split_instagram(fields['instagram']),
        )
        obj.save()
    except Exception as e:
        logger.exception('Apply save failed: %s', e)
        return json_error('INTERNAL_ERROR', 'Sunucu hatası', 500)
    logger.info('Application received: id=%s folder=%s', obj.pk, stored.folder_id)

    base_url = request.build_absolute_uri('/').rstrip('/')
    first = (stored.images or stored.docs or [None])[0]
    folder = first.rsplit('/', 1)[0] if first else stored.folder
    next_step = {'message': NEXT_MESSAGE, 'redirect': f'{base_url}/', 'redirectAfterMs': 1500}
    response = JsonResponse({
        'ok': True,
        'id': str(obj.pk),
        'folder': folder,
        'images': stored.images,
        'docs': stored.docs,
        'preview': {
            'images': [f'{base_url}{p}' for p in stored.images],
            'docs': [f'{base_url}{p}' for p in stored.docs],
        },
        'counts': {'images': len(stored.images), 'docs': len(stored.docs), 'skipped': len(stored.skipped)},
        'skipped': stored.skipped,
        'next': next_step,
    }, status=201)
    response['X-Redirect'] = next_step['redirect']
    return response

"""
e-doğrula: visitor reviews.

GET  /api/reviews/for/<id or slug>, GET /api/reviews?business=<id or slug>
POST /api/reviews  { business, rating, comment?, author? }
"""

import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.normalization import clean
from directory.services import reviews as svc
from directory.view_utils import client_ip, get_request_payload, json_error, validation_error_response

logger = logging.getLogger(__name__)


def _listing(request, key):
    # unknown businesses get an empty listing rather than a 404
    business = svc.find_business(key)
    if business is None:
        return JsonResponse(svc.empty_payload())
    return JsonResponse(svc.cached_summary(business, request.GET))


@require_http_methods(['GET'])
def reviews_for(request, key):
    return _listing(request, key)


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def review_collection(request):
    if request.method == 'GET':
        return _listing(request, request.GET.get('business'))

    body = get_request_payload(request)
    business = svc.find_business(body.get('business'))
    if business is None:
        return json_error('BUSINESS_NOT_FOUND', 'İşletme bulunamadı', 400)
    fingerprint = clean(str(body.get('fingerprint') or body.get('fp') or request.headers.get('x-fp') or ''))
    try:
        review = svc.create_review(
            business,
            body,
            ip=client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
            fingerprint=fingerprint,
        )
    except svc.RateLimited:
        return json_error('RATE_LIMITED', 'Lütfen daha sonra tekrar deneyin.', 429)
    except ValidationError as e:
        return validation_error_response(e, status=409 if e.code == 'ALREADY_REVIEWED' else 400)
    return JsonResponse({'success': True, 'review': review.to_json()}, status=201)

"""
e-doğrula: Google Places proxy and the place knowledge card.

GET /api/google/reviews?placeId=&limit=&sync=
GET /api/google/reviews/search?query=&limit=&sync=
GET /api/knowledge/geo/knowledge?q=
"""

import logging

import requests
from django.conf import settings
from django.core.cache import cache
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from directory.normalization import clean
from directory.services import knowledge as knowledge_svc
from directory.services.google_places import PlacesClient, PlacesError, fetch_place_reviews, sync_place_rating
from directory.view_utils import json_error

logger = logging.getLogger(__name__)


def _limit(raw):
    try:
        asked = int(raw or 1000)
    except (TypeError, ValueError):
        asked = 1000
    return max(1, min(asked or 1000, 5000, settings.GOOGLE_REVIEWS_HARD_LIMIT))


def _client():
    if not settings.GOOGLE_PLACES_API_KEY:
        return None
    return PlacesClient()


def _reviews_payload(request, client, place_id):
    limit = _limit(request.GET.get('limit'))
    key = f'google:reviews:{place_id}:{limit}'
    data = cache.get(key)
    if data is None:
        data = fetch_place_reviews(client, place_id, limit)
        cache.set(key, data, settings.GOOGLE_CACHE_TTL)
    if request.GET.get('sync', '1') != '0':
        sync_place_rating(data['place'])
    return {
        'success': True,
        'place': data['place'],
        'reviews': data['reviews'],
        'mode': 'legacy',
        'totalReturned': len(data['reviews']),
        'limit': limit,
    }


@require_http_methods(['GET'])
def google_reviews(request):
    client = _client()
    if client is None:
        return json_error('GOOGLE_NOT_CONFIGURED', 'Google API anahtarı tanımlı değil', 500)
    place_id = clean(request.GET.get('placeId'))
    if not place_id:
        return json_error('VALIDATION_ERROR', 'placeId gerekli', 400)
    try:
        return JsonResponse(_reviews_payload(request, client, place_id))
    except PlacesError as e:
        logger.warning('Google reviews failed: place=%s error=%s', place_id, e)
        return json_error('GOOGLE_DETAILS_FAILED', 'Google yorumları alınamadı', 502)


@require_http_methods(['GET'])
def google_reviews_search(request):
    client = _client()
    if client is None:
        return json_error('GOOGLE_NOT_CONFIGURED', 'Google API anahtarı tanımlı değil', 500)
    query = ' '.join(clean(request.GET.get('query')).split())[:160]
    if not query:
        return json_error('VALIDATION_ERROR', 'query gerekli', 400)
    try:
        key = f'google:search:{query.lower()}'
        place_id = cache.get(key)
        if place_id is None:
            place = client.search(query) or {}
            place_id = place.get('place_id') or ''
            cache.set(key, place_id, settings.GOOGLE_CACHE_TTL)
        if not place_id:
            return json_error('NOT_FOUND', 'Yer bulunamadı', 404)
        payload = _reviews_payload(request, client, place_id)
    except PlacesError as e:
        logger.warning('Google reviews search failed: query=%r error=%s', query, e)
        return json_error('GOOGLE_SEARCH_FAILED', 'Google araması başarısız', 502)
    return JsonResponse({'placeId': place_id, **payload})


@require_http_methods(['GET'])
def geo_knowledge(request):
    try:
        return JsonResponse(knowledge_svc.knowledge(request.GET.get('q')))
    except (PlacesError, requests.RequestException) as e:
        logger.error('Knowledge card failed: q=%r error=%s', request.GET.get('q'), e)
        return json_error('KNOWLEDGE_FETCH_FAILED', 'Bilgi kartı alınamadı', 500)

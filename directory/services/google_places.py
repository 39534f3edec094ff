"""
e-doğrula: Google Places client used to fill missing business contact data.

Text search finds the best match for "<name> <location>", details supplies
phone, website, address and the Maps URL. Only blank business fields are filled.
The same client backs the public Google reviews proxy.
"""

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, List, Optional

import certifi
import requests
from django.conf import settings
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from directory.models import Business
from directory.normalization import clean, normalize_phone, to_https

logger = logging.getLogger(__name__)

TEXT_SEARCH_URL = 'https://maps.googleapis.com/maps/api/place/textsearch/json'
DETAILS_URL = 'https://maps.googleapis.com/maps/api/place/details/json'
DETAIL_FIELDS = 'name,formatted_phone_number,international_phone_number,website,url,formatted_address,rating,user_ratings_total'
REVIEW_FIELDS = 'place_id,name,formatted_address,url,rating,user_ratings_total,reviews'
DEFAULT_LOCATION = 'Sapanca, Sakarya, Türkiye'

MAX_RETRIES = 3
BACKOFF_FACTOR = 0.5
RETRY_STATUS_CODES = [500, 502, 503, 504]


class PlacesError(Exception):
    """Places API answered with an error status or could not be reached."""


def _create_session() -> requests.Session:
    session = requests.Session()
    session.verify = certifi.where()
    retry_strategy = Retry(
        total=MAX_RETRIES,
        backoff_factor=BACKOFF_FACTOR,
        status_forcelist=RETRY_STATUS_CODES,
        allowed_methods=['GET'],
        raise_on_status=False,
    )
    session.mount('https://', HTTPAdapter(max_retries=retry_strategy))
    return session


class PlacesClient:
    def __init__(self, api_key: str = '', language: str = '', timeout: Optional[float] = None, session=None):
        self.api_key = api_key or settings.GOOGLE_PLACES_API_KEY
        self.language = language or settings.GOOGLE_PLACES_LANG
        self.timeout = timeout or settings.GOOGLE_API_TIMEOUT
        self.session = session or _create_session()
        if not self.api_key:
            raise PlacesError('GOOGLE_PLACES_API_KEY is not set')

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {'key': self.api_key, 'language': self.language, **params}
        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise PlacesError(str(e)[:200]) from e
        status = data.get('status', 'OK')
        if status not in ('OK', 'ZERO_RESULTS'):
            raise PlacesError(f"{status}: {data.get('error_message', '')}".strip(': '))
        return data

    def search(self, query: str, **params) -> Optional[Dict[str, Any]]:
        """Best text-search match or None."""
        results = self._get(TEXT_SEARCH_URL, {'query': query, **params}).get('results') or []
        return results[0] if results else None

    def details(self, place_id: str, fields: str = DETAIL_FIELDS, **params) -> Optional[Dict[str, Any]]:
        return self._get(DETAILS_URL, {'place_id': place_id, 'fields': fields, **params}).get('result') or None


def enrich_business(business, client: PlacesClient, location: str = DEFAULT_LOCATION, save: bool = True) -> Dict[str, Any]:
    """
    Look the business up and fill blank phone/website/address.
    Returns a summary dict; ``found`` is False when Places had no match.
    """
    query = f'{business.name} {location}'.strip()
    place = client.search(query)
    if not place:
        return {'found': False, 'query': query, 'changed': []}
    details = client.details(place['place_id']) or {}

    phone = clean(details.get('international_phone_number') or details.get('formatted_phone_number'))
    website = clean(details.get('website'))
    address = clean(details.get('formatted_address'))
    changed = []
    if not business.phone and phone:
        business.phone = normalize_phone(phone) or ''
        changed.append('phone')
    if not business.website and website:
        business.website = to_https(website) or ''
        changed.append('website')
    if not business.address and address:
        business.address = address
        changed.append('address')

    business.google_place_id = place['place_id']
    business.google = {
        'placeId': place['place_id'],
        'phone': phone,
        'website': website,
        'address': address,
        'mapsUrl': clean(details.get('url')),
        'rating': details.get('rating'),
        'reviewsCount': details.get('user_ratings_total'),
    }
    if details.get('rating') is not None:
        business.google_rating = float(details['rating'])
    if details.get('user_ratings_total') is not None:
        business.google_reviews_count = int(details['user_ratings_total'])

    if save:
        business.save()
    logger.info('Places enrichment: business=%s place=%s changed=%s', business.pk, place['place_id'], changed)
    return {'found': True, 'query': query, 'placeId': place['place_id'], 'changed': changed}


def place_meta(result: Dict[str, Any], place_id: str = '') -> Dict[str, Any]:
    return {
        'id': result.get('place_id') or place_id or None,
        'name': result.get('name'),
        'address': result.get('formatted_address'),
        'rating': result.get('rating'),
        'count': result.get('user_ratings_total') or 0,
        'googleMapsUri': result.get('url'),
    }


def place_reviews(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Places review objects in the shape the site renders."""
    reviews = []
    for rv in result.get('reviews') or []:
        time = rv.get('time')
        reviews.append({
            'author': rv.get('author_name'),
            'authorUrl': rv.get('author_url'),
            'authorPhoto': rv.get('profile_photo_url'),
            'rating': rv.get('rating'),
            'text': rv.get('text') or '',
            'time': datetime.fromtimestamp(time, tz=dt_timezone.utc).isoformat() if time else None,
        })
    return reviews


def fetch_place_reviews(client: PlacesClient, place_id: str, limit: int) -> Dict[str, Any]:
    """Meta and newest reviews for a place; details returns at most five."""
    result = client.details(place_id, fields=REVIEW_FIELDS, reviews_sort='newest', reviews_no_translations='true')
    if not result:
        raise PlacesError('NOT_FOUND')
    return {'place': place_meta(result, place_id), 'reviews': place_reviews(result)[:limit]}


def sync_place_rating(meta: Dict[str, Any]) -> int:
    """Copy a place's Google rating onto businesses linked to it. Returns rows updated."""
    place_id = meta.get('id')
    if not place_id:
        return 0
    updated = 0
    for business in Business.objects.filter(google_place_id=place_id):
        business.google_rating = float(meta.get('rating') or 0)
        business.google_reviews_count = int(meta.get('count') or 0)
        business.google = {
            **(business.google or {}),
            'placeId': place_id,
            'name': meta.get('name'),
            'address': meta.get('address'),
            'mapsUrl': meta.get('googleMapsUri'),
            'rating': meta.get('rating'),
            'reviewsCount': meta.get('count'),
        }
        business.save(update_fields=['google_rating', 'google_reviews_count', 'google'])
        updated += 1
    return updated

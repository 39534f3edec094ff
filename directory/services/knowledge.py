"""
e-doğrula: place knowledge card (title, Wikipedia summary, map link, weather).

Places text search + details give the name and coordinates, the Turkish
Wikipedia REST summary gives the text and Open-Meteo the current weather.
Each source is cached on its own; a missing source only blanks its fields.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from django.conf import settings
from django.core.cache import cache

from directory.services import google_places
from directory.services.google_places import PlacesClient

logger = logging.getLogger(__name__)

DEFAULT_QUERY = 'Sapanca'
WIKI_SUMMARY_URL = 'https://tr.wikipedia.org/api/rest_v1/page/summary/'
WEATHER_URL = 'https://api.open-meteo.com/v1/forecast'
PLACE_FIELDS = 'name,formatted_address,geometry,url'
WEATHER_TTL = 15 * 60
HEADERS = {'User-Agent': 'edogrula-geo-knowledge/1.0', 'Accept': 'application/json'}


def safe_query(raw) -> str:
    return ' '.join(str(raw or '').split())[:120] or DEFAULT_QUERY


def _cached(key: str, fetch, ttl: int):
    hit = cache.get(key)
    if hit is not None:
        return hit
    value = fetch()
    if value is not None:
        cache.set(key, value, ttl)
    return value


def fetch_place(query: str, session=None) -> Optional[Dict[str, Any]]:
    if not settings.GOOGLE_PLACES_API_KEY:
        return None
    client = PlacesClient(session=session)
    found = client.search(query, region='tr')
    if not found or not found.get('place_id'):
        return None
    result = client.details(found['place_id'], fields=PLACE_FIELDS) or {}
    return {
        'place_id': found['place_id'],
        'name': result.get('name'),
        'formatted_address': result.get('formatted_address'),
        'location': (result.get('geometry') or {}).get('location'),
        'url': result.get('url'),
    }


def fetch_wiki(query: str, session) -> Optional[Dict[str, Any]]:
    try:
        response = session.get(
            WIKI_SUMMARY_URL + quote(query, safe=''), headers=HEADERS, timeout=settings.GOOGLE_API_TIMEOUT,
        )
        if response.status_code != 200:
            return None
        return response.json()
    except (requests.RequestException, ValueError) as e:
        logger.info('Wikipedia summary unavailable for %r: %s', query, e)
        return None


def fetch_weather(lat: float, lng: float, session) -> Optional[Dict[str, Any]]:
    response = session.get(
        WEATHER_URL,
        params={
            'latitude': lat,
            'longitude': lng,
            'current_weather': 'true',
            'daily': 'temperature_2m_max,temperature_2m_min,weathercode',
            'timezone': 'auto',
        },
        headers=HEADERS,
        timeout=settings.GOOGLE_API_TIMEOUT,
    )
    response.raise_for_status()
    return response.json()


def knowledge(raw_query, session=None) -> Dict[str, Any]:
    """
    Knowledge card for ``raw_query``. Raises PlacesError or
    requests.RequestException when Places or the weather call fails.
    """
    q = safe_query(raw_query)
    key = q.lower()
    session = session or google_places._create_session()
    ttl = settings.GEO_KNOWLEDGE_TTL

    place = _cached(f'knowledge:place:{key}', lambda: fetch_place(q, session), ttl)
    wiki = _cached(f'knowledge:wiki:{key}', lambda: fetch_wiki(q, session), ttl) or {}

    coords = (place or {}).get('location') or None
    weather = None
    if coords and coords.get('lat') is not None and coords.get('lng') is not None:
        lat, lng = float(coords['lat']), float(coords['lng'])
        weather = _cached(
            f'knowledge:weather:{key}:{lat:.4f},{lng:.4f}',
            lambda: fetch_weather(lat, lng, session),
            WEATHER_TTL,
        )

    place = place or {}
    gmap_url = place.get('url')
    if not gmap_url and place.get('place_id'):
        gmap_url = f"https://www.google.com/maps/place/?q=place_id:{place['place_id']}"
    return {
        'title': (wiki.get('titles') or {}).get('display') or place.get('name') or q,
        'subtitle': wiki.get('description') or ('Konum' if place.get('formatted_address') else 'Bilgi'),
        'summary': wiki.get('extract'),
        'wiki_url': ((wiki.get('content_urls') or {}).get('desktop') or {}).get('page'),
        'coordinates': coords,
        'gmap_url': gmap_url,
        'weather': weather,
    }


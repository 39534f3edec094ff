"""
e-doğrula: visitor reviews. Listing with rating summary (cached for
REVIEWS_CACHE_TTL seconds), rate-limited creation and the business
rating / reviews_count sync.
"""

import hashlib
import logging
import math
import re

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q

from directory.models import Business, Review
from directory.normalization import clean, slugify_tr
from directory.view_utils import normalize_id, page_count, parse_pagination

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 50
TAG_RE = re.compile(r'<[^>]*>')
CACHE_PREFIX = 'reviews'


class RateLimited(Exception):
    pass


def find_business(key):
    """Business by primary key, else by (TR-slugified) slug."""
    key = clean(str(key or ''))
    if not key:
        return None
    if key.isdigit():
        business = Business.objects.filter(pk=normalize_id(key)).first()
        if business:
            return business
    slug = slugify_tr(key)
    return Business.objects.filter(slug=slug).first() if slug else None


def business_json(business):
    return {
        'id': business.pk,
        'name': business.name,
        'slug': business.slug,
        'rating': business.rating,
        'reviewsCount': business.reviews_count,
    }


def empty_payload():
    return {
        'success': True,
        'rating': None,
        'count': 0,
        'reviews': [],
        'meta': {'page': 1, 'limit': DEFAULT_LIMIT, 'pages': 0, 'total': 0},
    }


def visible_reviews(business):
    return Review.objects.filter(business=business, status=Review.Status.VISIBLE)


def _average(value):
    return round(value, 1) if value is not None else None


def summary(business, params):
    """Rating average and 1..5 histogram plus one page of visible reviews."""
    page, limit, offset = parse_pagination(params, DEFAULT_LIMIT, MAX_LIMIT)
    qs = visible_reviews(business)
    stats = qs.aggregate(
        count=Count('id'),
        avg=Avg('rating'),
        **{f'h{n}': Count('id', filter=Q(rating=n)) for n in range(1, 6)},
    )
    total = stats['count']
    items = qs.order_by('-created_at', '-id')[offset:offset + limit]
    return {
        'success': True,
        'business': business_json(business),
        'rating': {
            'average': _average(stats['avg']),
            'histogram': {str(n): stats[f'h{n}'] for n in range(1, 6)},
        },
        'count': total,
        'reviews': [review.to_json() for review in items],
        'meta': {'page': page, 'limit': limit, 'pages': page_count(total, limit) if total else 0, 'total': total},
    }


def _cache_key(business_id, params):
    page, limit, _ = parse_pagination(params, DEFAULT_LIMIT, MAX_LIMIT)
    return f'{CACHE_PREFIX}:{business_id}:v{_version(business_id)}:p{page}:l{limit}'


def _version(business_id):
    return cache.get(f'{CACHE_PREFIX}:{business_id}:version', 0)


def invalidate(business_id):
    """Drop every cached page for the business by bumping its key version."""
    key = f'{CACHE_PREFIX}:{business_id}:version'
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, 1, None)


def cached_summary(business, params):
    key = _cache_key(business.pk, params)
    payload = cache.get(key)
    if payload is None:
        payload = summary(business, params)
        if settings.REVIEWS_CACHE_TTL:
            cache.set(key, payload, settings.REVIEWS_CACHE_TTL)
    return payload


def allow_post(ip, business_id):
    """At most REVIEW_RATE_LIMIT_PER_MIN posts per ip and business in a one-minute window."""
    key = f'{CACHE_PREFIX}:rate:{ip or "ip"}:{business_id}'
    if cache.add(key, 1, 60):
        return True
    try:
        count = cache.incr(key)
    except ValueError:
        cache.set(key, 1, 60)
        return True
    return count <= settings.REVIEW_RATE_LIMIT_PER_MIN


def parse_rating(value):
    try:
        rating = float(str(value).replace(',', '.'))
    except (TypeError, ValueError):
        rating = None
    if rating is None or not math.isfinite(rating) or not 1 <= rating <= 5:
        raise ValidationError('Puan 1 ile 5 arasında olmalıdır.', code='INVALID_RATING')
    return int(rating + 0.5)


def sync_business_rating(business):
    """Write the visible-review average (one decimal) and count back to the business."""
    stats = visible_reviews(business).aggregate(count=Count('id'), avg=Avg('rating'))
    business.rating = _average(stats['avg']) or 0
    business.reviews_count = stats['count']
    Business.objects.filter(pk=business.pk).update(rating=business.rating, reviews_count=business.reviews_count)


def create_review(business, body, *, ip='', user_agent='', fingerprint=''):
    """
    Validate and store a review, then resync the business rating and drop
    its cached pages. Raises RateLimited or ValidationError
    (INVALID_RATING, ALREADY_REVIEWED).
    """
    if not allow_post(ip, business.pk):
        raise RateLimited()
    rating = parse_rating(body.get('rating'))
    comment = TAG_RE.sub('', clean(body.get('comment'))[:Review.COMMENT_MAX])
    review = Review(
        business=business,
        rating=rating,
        comment=comment,
        author=clean(body.get('author'))[:Review.AUTHOR_MAX] or Review.DEFAULT_AUTHOR,
        fingerprint=clean(fingerprint)[:128],
        ip_hash=hashlib.sha256(ip.encode('utf-8')).hexdigest() if ip else '',
        user_agent=user_agent[:300],
        locale=clean(body.get('locale'))[:16],
    )
    try:
        with transaction.atomic():
            review.save()
    except IntegrityError:
        raise ValidationError('Bu işletmeyi zaten değerlendirdiniz.', code='ALREADY_REVIEWED')
    sync_business_rating(business)
    invalidate(business.pk)
    logger.info('Review created: business=%s rating=%s', business.pk, review.rating)
    return review

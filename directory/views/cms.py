"""
e-doğrula: CMS articles and pages.

Public: /api/cms/articles/featured, /api/cms/article/by-slug/<slug>, /api/cms/page/by-slug/<slug>.
Admin:  /api/admin/cms/articles[/<id>], /api/admin/cms/pages[/<id>].
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import ensure_admin
from directory.models import Article, ContentStatus, Page
from directory.normalization import clean, parse_bool, slugify_tr
from directory.view_utils import get_request_payload, json_error, normalize_id, paginate, parse_sort

logger = logging.getLogger(__name__)

MODELS = {'articles': Article, 'pages': Page}
SORT_FIELDS = {
    'updatedAt': 'updated_at', 'createdAt': 'created_at', 'order': 'order',
    'title': 'title', 'datePublished': 'date_published',
}
DUPLICATE_MESSAGE = 'Aynı slug ile içerik zaten var'


def _fields(model, body):
    data = {}
    for key, field in model.EDITABLE.items():
        if key not in body:
            continue
        value = body[key]
        if field == 'order':
            try:
                value = int(value or 0)
            except (TypeError, ValueError):
                value = 0
        elif field == 'pinned':
            value = parse_bool(value)
        elif field == 'tags':
            value = value if isinstance(value, list) else [t for t in str(value or '').split(',')]
        elif field == 'status':
            value = value if value in ContentStatus.values else ContentStatus.DRAFT
        else:
            value = '' if value is None else str(value)
        data[field] = value
    if 'slug' in data:
        data['slug'] = slugify_tr(data['slug'])
    return data


def _card(article):
    return {
        'id': str(article.pk),
        'title': article.title,
        'slug': article.slug,
        'excerpt': article.excerpt,
        'image': article.cover_image,
        'to': f'/blog/{article.slug}',
        'datePublished': (article.date_published or article.created_at).isoformat(),
        'dateModified': (article.date_modified or article.updated_at).isoformat(),
    }


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@require_http_methods(['GET'])
def featured_articles(request):
    """Pinned, published articles; ``place`` filters, ``limit`` 1..12 (default 3)."""
    try:
        limit = min(12, max(1, int(request.GET.get('limit') or 3)))
    except (TypeError, ValueError):
        limit = 3
    qs = Article.objects.filter(status=ContentStatus.PUBLISHED, pinned=True)
    place = clean(request.GET.get('place'))[:120]
    if place:
        qs = qs.filter(place__icontains=place)
    items = qs.order_by('order', '-date_published', '-pk')[:limit]
    return JsonResponse({'success': True, 'items': [_card(a) for a in items]})


def _published(model, slug):
    slug = slugify_tr(slug)
    if not slug:
        return None, json_error('INVALID_SLUG', 'Geçersiz slug', 400)
    obj = model.objects.filter(slug=slug, status=ContentStatus.PUBLISHED).first()
    if obj is None:
        return None, json_error('NOT_FOUND', 'İçerik bulunamadı', 404)
    return obj, None


@require_http_methods(['GET'])
def article_by_slug(request, slug):
    article, error = _published(Article, slug)
    return error or JsonResponse({'success': True, 'article': article.to_json()})


@require_http_methods(['GET'])
def page_by_slug(request, slug):
    page, error = _published(Page, slug)
    return error or JsonResponse({'success': True, 'page': page.to_json()})


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(['GET', 'POST'])
@ensure_admin
def content_collection(request, kind):
    model = MODELS[kind]
    key = 'article' if model is Article else 'page'

    if request.method == 'POST':
        data = _fields(model, get_request_payload(request))
        if not clean(data.get('title')):
            return json_error('VALIDATION_ERROR', 'Başlık zorunlu', 400)
        try:
            obj = model(**data)
            with transaction.atomic():
                obj.save()
        except IntegrityError:
            return json_error('DUPLICATE', DUPLICATE_MESSAGE, 409)
        logger.info('CMS %s created: id=%s slug=%s', key, obj.pk, obj.slug)
        return JsonResponse({'success': True, key: obj.to_json()}, status=201)

    qs = model.objects.all()
    q = clean(request.GET.get('q'))[:120]
    if q:
        qs = qs.filter(Q(title__icontains=q) | Q(slug__icontains=q))
    status = clean(request.GET.get('status'))
    if status and status != 'all':
        qs = qs.filter(status=status)
    place = clean(request.GET.get('place'))[:120]
    if place and model is Article:
        qs = qs.filter(place__icontains=place)
    qs = qs.order_by(*parse_sort(request.GET.get('sort'), SORT_FIELDS, '-updatedAt'))
    items, meta = paginate(qs, request.GET, default_limit=50, max_limit=200)
    return JsonResponse({'success': True, 'items': [o.to_json() for o in items], **meta})


@csrf_exempt
@require_http_methods(['GET', 'PUT', 'PATCH', 'DELETE'])
@ensure_admin
def content_detail(request, kind, content_id):
    model = MODELS[kind]
    key = 'article' if model is Article else 'page'
    pk = normalize_id(content_id)
    if pk is None:
        return json_error('INVALID_ID', 'Geçersiz id', 400)
    obj = model.objects.filter(pk=pk).first()
    if obj is None:
        return json_error('NOT_FOUND', 'İçerik bulunamadı', 404)

    if request.method == 'DELETE':
        obj.delete()
        logger.info('CMS %s deleted: id=%s', key, pk)
        return JsonResponse({'success': True, 'message': 'deleted'})

    if request.method in ('PUT', 'PATCH'):
        body = get_request_payload(request)
        data = _fields(model, body)
        if 'title' in data and not data.get('slug') and 'slug' not in body:
            data['slug'] = slugify_tr(data['title'])
        for field, value in data.items():
            setattr(obj, field, value)
        try:
            with transaction.atomic():
                obj.save()
        except IntegrityError:
            return json_error('DUPLICATE', DUPLICATE_MESSAGE, 409)

    return JsonResponse({'success': True, key: obj.to_json()})

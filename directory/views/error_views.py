"""
e-doğrula: error handlers (400, 404, 500). API paths answer with the JSON
error shape; other paths fall back to Django's default pages.
"""

from django.http import JsonResponse
from django.views import defaults


def _is_api(request):
    return (getattr(request, 'path', '') or '').startswith('/api/')


def _json(request, code, message, status):
    return JsonResponse({'ok': False, 'code': code, 'message': message, 'path': request.path}, status=status)


def custom_bad_request(request, exception=None):
    if _is_api(request):
        return _json(request, 'BAD_REQUEST', 'Geçersiz istek', 400)
    return defaults.bad_request(request, exception)


def custom_page_not_found(request, exception=None):
    if _is_api(request):
        return _json(request, 'NOT_FOUND', 'Endpoint bulunamadı', 404)
    return defaults.page_not_found(request, exception)


def custom_server_error(request):
    if _is_api(request):
        return _json(request, 'SERVER_ERROR', 'Sunucu hatası', 500)
    return defaults.server_error(request)

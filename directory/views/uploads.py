"""
e-doğrula: admin business photo upload.

POST /api/uploads/business and /api/admin/uploads/business, multipart field
``files`` (up to 10) plus ``slug`` naming the target folder.
"""

import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from directory.auth import ensure_admin
from directory.services.uploads import UploadError, save_business_files
from directory.view_utils import json_error

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(['POST'])
@ensure_admin
def business_upload(request):
    files = request.FILES.getlist('files')
    if not files:
        return json_error('NO_FILES', 'Dosya bulunamadı', 400)
    try:
        saved = save_business_files(files, request.POST.get('slug'))
    except UploadError as e:
        return json_error(e.code, e.message, e.status)
    except OSError as e:
        logger.exception('Business upload write failed: %s', e)
        return json_error('UPLOADS_NOT_WRITABLE', 'Yükleme dizinine yazılamıyor', 500)
    logger.info('Business upload: slug=%s files=%s', request.POST.get('slug'), len(saved))
    return JsonResponse({'success': True, 'files': saved})

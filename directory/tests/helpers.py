"""
Shared fixtures for directory tests: admin tokens and tiny in-memory images.
"""

import io

from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from directory.auth import issue_token

ADMIN_EMAIL = 'admin@edogrula.org'


def admin_token(email=ADMIN_EMAIL, pk=1):
    return issue_token({'id': pk, 'email': email, 'role': 'admin'})


def user_token(email='user@example.com', pk=2):
    return issue_token({'id': pk, 'email': email, 'role': 'user'})


def bearer(token):
    return {'HTTP_AUTHORIZATION': f'Bearer {token}'}


def admin_headers():
    return bearer(admin_token())


def png_bytes(size=(8, 8), color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new('RGB', size, color).save(buf, format='PNG')
    return buf.getvalue()


def png_upload(name='photo.png'):
    return SimpleUploadedFile(name, png_bytes(), content_type='image/png')

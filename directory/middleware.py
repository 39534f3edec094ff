"""
e-doğrula: request middleware.

JwtUserMiddleware decodes the bearer token once per request and exposes the
payload as ``request.jwt_user`` (None when absent or invalid). It never
rejects; gating is done by the decorators in ``directory.auth``.
"""

import logging

from .auth import AuthError, decode_token, extract_token

logger = logging.getLogger(__name__)


class JwtUserMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.jwt_user = None
        request.is_admin = False
        token = extract_token(request)
        if token:
            try:
                request.jwt_user = decode_token(token)
            except AuthError as e:
                logger.debug('Ignoring token on %s: %s', request.path, e.code)
        return self.get_response(request)

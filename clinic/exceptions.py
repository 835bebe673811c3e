import logging

from django.db import IntegrityError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)

_DRF_CODES = {
    400: 'invalid',
    401: 'not_authenticated',
    403: 'permission_denied',
    404: 'not_found',
    405: 'method_not_allowed',
    429: 'throttled',
}


def _error(code, message, status):
    return Response({'ok': False, 'error': {'code': code, 'message': message}}, status=status)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        # service layer errors
        if isinstance(exc, PermissionError):
            return _error('forbidden', str(exc), 403)
        if isinstance(exc, ValueError):
            return _error('bad_request', str(exc), 400)
        if isinstance(exc, IntegrityError):
            return _error('conflict', 'Conflicting record.', 409)
        logger.exception('Unhandled error in %s', context.get('view'))
        return _error('server_error', str(exc), 500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return _error(_DRF_CODES.get(resp.status_code, 'api_error'), detail, resp.status_code)

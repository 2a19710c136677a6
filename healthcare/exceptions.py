import logging

from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.views import set_rollback

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """Render every error as ``{success: false, message, errors?}``."""
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.error("unhandled error in %s", view.__class__.__name__ if view else '?', exc_info=exc)
        set_rollback()
        return Response({'success': False, 'message': 'Internal server error'}, status=500)

    if isinstance(exc, exceptions.ValidationError):
        errors = resp.data if isinstance(resp.data, dict) else {'non_field_errors': resp.data}
        body = {'success': False, 'message': 'Validation failed', 'errors': errors}
    elif isinstance(resp.data, dict) and 'detail' in resp.data:
        body = {'success': False, 'message': str(resp.data['detail'])}
    else:
        body = {'success': False, 'message': str(resp.data)}
    return Response(body, status=resp.status_code, headers=_auth_headers(resp))


def _auth_headers(resp):
    headers = {}
    for name in ('WWW-Authenticate', 'Retry-After'):
        if resp.has_header(name):
            headers[name] = resp[name]
    return headers

"""
API error type and the DRF exception handler that renders every failure
as a JSON body with an `error` message.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Error carrying the HTTP status and message to return to the client"""

    def __init__(self, status_code, message, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details

    def to_dict(self):
        data = {'error': self.message}
        if self.details is not None:
            data['details'] = self.details
        return data


def api_exception_handler(exc, context):
    """
    Map exceptions raised inside API views to JSON responses.

    - ApiError: its own status and message
    - serializer ValidationError: 400 with the field errors
    - other DRF exceptions (401/403/404/405...): {'error': detail}
    - anything else: logged with traceback, 500
    """
    if isinstance(exc, ApiError):
        return Response(exc.to_dict(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, ValidationError):
            return response
        detail = response.data.get('detail') if isinstance(response.data, dict) else None
        if detail is not None:
            response.data = {'error': str(detail)}
        return response

    view = context.get('view')
    logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'API view'}: {exc}")
    return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

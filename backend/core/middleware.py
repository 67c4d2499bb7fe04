"""
Request decoration with the caller's role.

Runs after Django's AuthenticationMiddleware. For API requests it resolves
the user from the session cookie or, failing that, from a bearer token,
stores the role on the request and echoes it in X-User-Role / X-User-Id
response headers for the frontend.
"""
import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, AuthenticationFailed

logger = logging.getLogger(__name__)


class RoleHeaderMiddleware:
    api_prefix = '/api/'

    def __init__(self, get_response):
        self.get_response = get_response
        self.jwt_authentication = JWTAuthentication()

    def __call__(self, request):
        request.user_role = None
        request.user_id_header = None

        if request.path.startswith(self.api_prefix):
            user = self._resolve_user(request)
            if user is not None and user.deleted_at is None:
                request.user_role = user.role
                request.user_id_header = str(user.pk)

        response = self.get_response(request)

        if request.user_role:
            response['X-User-Role'] = request.user_role
            response['X-User-Id'] = request.user_id_header
        return response

    def _resolve_user(self, request):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            return user
        try:
            result = self.jwt_authentication.authenticate(request)
        except (InvalidToken, AuthenticationFailed) as e:
            logger.warning(f"Failed to resolve user role from bearer token: {e}")
            return None
        if result is None:
            return None
        return result[0]

import logging

import jwt
from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from common.utils import decode_identity_token, get_identity_uid

logger = logging.getLogger(__name__)

User = get_user_model()

class IdentityTokenMiddleware(MiddlewareMixin):
    """
    Identity-provider token authentication for API endpoints
    """

    # A valid token is enough here; the user record may not exist yet
    user_optional_endpoints = [
        '/api/auth/sync',
        '/api/auth/sync/',
    ]

    def process_request(self, request):
        request.identity_claims = None
        request.identity_user = None

        # Skip token authentication for non-API endpoints
        if not request.path.startswith('/api/'):
            return None

        # Let CORS preflight through
        if request.method == 'OPTIONS':
            return None

        # Get token from Authorization header
        auth_header = request.META.get('HTTP_AUTHORIZATION')
        if not auth_header or not auth_header.startswith('Bearer '):
            return JsonResponse({'message': 'Authentication required'}, status=401)

        token = auth_header.split(' ', 1)[1].strip()

        try:
            payload = decode_identity_token(token)
        except jwt.ExpiredSignatureError:
            return JsonResponse({'message': 'Token has expired'}, status=401)
        except jwt.InvalidTokenError as e:
            logger.info("Rejected identity token on %s: %s", request.path, e)
            return JsonResponse({'message': 'Invalid token'}, status=401)

        uid = get_identity_uid(payload)
        if not uid:
            return JsonResponse({'message': 'Invalid token'}, status=401)

        request.identity_claims = payload

        try:
            user = User.objects.get(identity_uid=uid, deleted_at__isnull=True)
        except User.DoesNotExist:
            if request.path in self.user_optional_endpoints:
                return None
            return JsonResponse({'message': 'User not found'}, status=401)

        # Set user in request
        request.identity_user = user
        request.user = user

        return None

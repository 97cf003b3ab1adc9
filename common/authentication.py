from rest_framework.authentication import BaseAuthentication


class IdentityTokenAuthentication(BaseAuthentication):
    """
    Hands the user resolved by IdentityTokenMiddleware to DRF.
    request.auth carries the verified token claims.
    """

    def authenticate(self, request):
        user = getattr(request._request, 'identity_user', None)
        if user is None:
            return None
        return (user, request._request.identity_claims)

    def authenticate_header(self, request):
        return 'Bearer'

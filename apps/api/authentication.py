"""
Bearer token authentication for the REST API.

Tokens are passed via the Authorization header:
    Authorization: Bearer <token>
"""

from rest_framework import authentication, exceptions

from .models import ApiToken


class ApiTokenAuthentication(authentication.BaseAuthentication):
    """
    Tokens are SHA-256 hashed in the database, so we hash the incoming token
    and compare. The token must be active (not revoked, not expired).
    """

    keyword = "Bearer"

    def authenticate(self, request):
        auth_header = request.META.get("HTTP_AUTHORIZATION", "")

        if not auth_header:
            return None

        parts = auth_header.split()

        if len(parts) != 2:
            return None

        keyword, raw_token = parts

        if keyword.lower() != self.keyword.lower():
            return None

        token = ApiToken.authenticate_raw_token(raw_token)

        if token is None:
            raise exceptions.AuthenticationFailed("Invalid or expired token")

        return (token.user, token)

    def authenticate_header(self, request):
        # Makes DRF answer 401 rather than 403 for unauthenticated requests
        return self.keyword

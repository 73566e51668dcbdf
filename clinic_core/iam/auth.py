# clinic_core/iam/auth.py

from __future__ import annotations

from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication


def access_cookie_name() -> str:
    return settings.SIMPLE_JWT.get("AUTH_COOKIE", "clinic_access")


class CookieOrHeaderJWTAuthentication(JWTAuthentication):
    """
    Bearer token from the Authorization header, else the HttpOnly access cookie.
    Tokens are issued elsewhere; this class only validates them.
    """

    def authenticate(self, request):
        raw_token = self._raw_token(request)
        if raw_token is None:
            return None

        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token

    def _raw_token(self, request):
        header = self.get_header(request)
        if header is not None:
            # A malformed header never falls through to the cookie
            return self.get_raw_token(header)
        return request.COOKIES.get(access_cookie_name()) or None

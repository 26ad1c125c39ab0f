from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header

ACCESS_TOKEN_COOKIE = "accessToken"


class AuthError(exceptions.AuthenticationFailed):
    default_detail = "Invalid access token"


def issue_access_token(user) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "id": user.pk,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class JWTAuthentication(BaseAuthentication):
    """Resolve the operator from a bearer token, falling back to the login cookie."""

    keyword = "Bearer"

    def authenticate(self, request):
        token = self._token_from_header(request) or request.COOKIES.get(ACCESS_TOKEN_COOKIE)
        if not token:
            return None

        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthError("Access token expired")
        except jwt.InvalidTokenError:
            raise AuthError("Invalid access token")

        user = get_user_model().objects.filter(pk=payload.get("id"), is_active=True).first()
        if user is None:
            raise AuthError("Invalid access token")
        return user, payload

    def authenticate_header(self, request):
        return self.keyword

    def _token_from_header(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise AuthError("Invalid access token")
        try:
            return auth[1].decode()
        except UnicodeError:
            raise AuthError("Invalid access token")

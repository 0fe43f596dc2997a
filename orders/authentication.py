# orders/authentication.py
import logging

import jwt
from django.conf import settings
from rest_framework import authentication, exceptions

from catalog.models import Member

logger = logging.getLogger("harvest.auth")


class TokenUser:
    """The authenticated caller, built from verified access-token claims."""

    is_authenticated = True

    def __init__(self, member, claims):
        self.member = member
        self.id = member.id
        self.role = claims.get("user_type") or member.user_type
        self.claims = claims

    def __str__(self):
        return f"TokenUser {self.id} ({self.role})"


def extract_bearer_token(header):
    if not header or not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def decode_access_token(token):
    """Return the claims of a valid access token, or None."""
    try:
        claims = jwt.decode(
            token,
            getattr(settings, "JWT_SECRET", settings.SECRET_KEY),
            algorithms=getattr(settings, "JWT_ALGORITHMS", ["HS256"]),
        )
    except jwt.InvalidTokenError as exc:
        logger.debug("Token verification failed: %s", exc)
        return None
    if claims.get("type") != "access" or not claims.get("userId"):
        return None
    return claims


class BearerTokenAuthentication(authentication.BaseAuthentication):
    keyword = "Bearer"

    def authenticate(self, request):
        token = extract_bearer_token(request.META.get("HTTP_AUTHORIZATION"))
        if token is None:
            return None

        claims = decode_access_token(token)
        if claims is None:
            raise exceptions.AuthenticationFailed("Invalid token")

        try:
            member = Member.objects.filter(pk=claims["userId"]).first()
        except (TypeError, ValueError):
            member = None
        if member is None:
            raise exceptions.AuthenticationFailed("Invalid token")
        return TokenUser(member, claims), claims

    def authenticate_header(self, request):
        return self.keyword

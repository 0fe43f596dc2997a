"""Tests for bearer token authentication."""

import pytest
from rest_framework.test import APIClient

from orders.authentication import decode_access_token, extract_bearer_token
from orders.models import Cart

from .conftest import make_token


class TestExtractBearerToken:
    def test_missing(self):
        assert extract_bearer_token(None) is None
        assert extract_bearer_token("") is None

    def test_wrong_scheme(self):
        assert extract_bearer_token("Basic abc") is None

    def test_bearer(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"


@pytest.mark.django_db
class TestDecodeAccessToken:
    def test_valid(self, buyer):
        claims = decode_access_token(make_token(buyer.id))
        assert claims["userId"] == buyer.id
        assert claims["type"] == "access"

    def test_refresh_token_rejected(self, buyer):
        assert decode_access_token(make_token(buyer.id, token_type="refresh")) is None

    def test_expired_rejected(self, buyer):
        assert decode_access_token(make_token(buyer.id, expires_in=-10)) is None

    def test_wrong_secret_rejected(self, buyer):
        assert decode_access_token(make_token(buyer.id, secret="another-secret-of-sufficient-length!")) is None


@pytest.mark.django_db
class TestCartAuthentication:
    def test_no_header_is_401_and_creates_nothing(self, buyer):
        response = APIClient().get("/api/v1/cart")
        assert response.status_code == 401
        assert response.json() == {"status": "error", "message": "Unauthorized"}
        assert not Cart.objects.exists()

    def test_invalid_token(self):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")
        response = client.get("/api/v1/cart")
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_unknown_member(self, db):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(999999)}")
        assert client.get("/api/v1/cart").status_code == 401

    def test_refresh_token_not_accepted(self, buyer):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(buyer.id, token_type='refresh')}")
        assert client.get("/api/v1/orders").status_code == 401

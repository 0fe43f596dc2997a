"""Pytest fixtures for the Harvest order service tests."""

from datetime import timedelta
from decimal import Decimal

import jwt
import pytest
from django.conf import settings
from django.utils import timezone
from rest_framework.test import APIClient

from catalog.models import Address, Discount, Member, Product
from orders.models import Cart, CartItem
from orders.pricing import line_pricing


def make_token(member_id, user_type="BUYER", token_type="access", secret=None, expires_in=3600):
    now = timezone.now()
    claims = {
        "userId": member_id,
        "user_type": user_type,
        "type": token_type,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, secret or settings.JWT_SECRET, algorithm="HS256")


@pytest.fixture
def buyer(db):
    return Member.objects.create(name="Budi", email="budi@example.com", phone_number="0811", user_type="BUYER")


@pytest.fixture
def other_buyer(db):
    return Member.objects.create(name="Sari", email="sari@example.com", user_type="BUYER")


@pytest.fixture
def seller_a(db):
    return Member.objects.create(name="Tani Makmur", email="makmur@example.com", user_type="FARMER")


@pytest.fixture
def seller_b(db):
    return Member.objects.create(name="Kebun Hijau", email="hijau@example.com", user_type="FARMER")


@pytest.fixture
def address(buyer):
    return Address.objects.create(
        member=buyer, recipient_name="Budi", phone="0811", full_address="Jl. Sawah 1",
        city="Bandung", province="Jawa Barat", postal_code="40111", is_primary=True,
    )


@pytest.fixture
def make_product(seller_a):
    def _make(seller=None, name="Tomat", price="10000", **kwargs):
        kwargs.setdefault("stock_quantity", 100)
        return Product.objects.create(seller=seller or seller_a, name=name, price=Decimal(price), **kwargs)
    return _make


@pytest.fixture
def make_discount():
    def _make(product, type="percentage", value="10", **kwargs):
        now = timezone.now()
        kwargs.setdefault("valid_from", now - timedelta(days=1))
        kwargs.setdefault("valid_until", now + timedelta(days=1))
        return Discount.objects.create(product=product, type=type, value=Decimal(value), **kwargs)
    return _make


@pytest.fixture
def add_to_cart(buyer):
    """Put a product in a buyer's cart, priced the way the cart endpoint prices it."""

    def _add(product, quantity=1, member=None, **kwargs):
        cart, _ = Cart.objects.get_or_create(buyer=member or buyer)
        unit_price, discount_price, subtotal = line_pricing(product, quantity)
        return CartItem.objects.create(
            cart=cart, product=product, quantity=quantity, unit_price=unit_price,
            discount_price=discount_price, subtotal=subtotal, **kwargs,
        )
    return _add


@pytest.fixture
def client_for():
    def _client(member):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(member.id, member.user_type)}")
        return client
    return _client


@pytest.fixture
def buyer_client(buyer, client_for):
    return client_for(buyer)


@pytest.fixture
def seller_client(seller_a, client_for):
    return client_for(seller_a)

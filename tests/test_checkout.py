"""Tests for splitting a checkout into per-seller orders."""

import re
from datetime import date
from decimal import Decimal

import pytest
from django.db import IntegrityError
from rest_framework.exceptions import NotFound, ValidationError

from orders import checkout
from orders.checkout import generate_order_number, place_orders
from orders.models import CartItem, Order, OrderItem

ORDER_NUMBER = re.compile(r"^FM\d{8}\d{3}$")


class TestOrderNumber:
    def test_format(self):
        for _ in range(50):
            assert ORDER_NUMBER.match(generate_order_number())

    def test_uses_date(self, monkeypatch):
        monkeypatch.setattr(checkout.random, "randint", lambda a, b: 7)
        assert generate_order_number(date(2026, 10, 18)) == "FM20261018007"


@pytest.mark.django_db
class TestPlaceOrders:
    def test_single_seller(self, buyer, seller_a, make_product, add_to_cart):
        first = add_to_cart(make_product(name="Tomat", price="10000"), quantity=2)
        second = add_to_cart(make_product(name="Wortel", price="5000"), quantity=3)

        result = place_orders(buyer.id, [first.id, second.id])

        assert len(result["orders"]) == 1
        order = Order.objects.get(id=result["orders"][0]["order_id"])
        assert order.seller_id == seller_a.id
        assert order.buyer_id == buyer.id
        assert order.subtotal == Decimal("35000.00")
        assert order.delivery_fee == Decimal("15000.00")
        assert order.service_fee == Decimal("2000.00")
        assert order.total_amount == Decimal("52000.00")
        assert order.status == "pending_payment"
        assert order.payment_status == "pending"
        assert ORDER_NUMBER.match(order.order_number)
        assert order.items.count() == 2
        assert not CartItem.objects.filter(id__in=[first.id, second.id]).exists()

    def test_splits_per_seller(self, buyer, seller_a, seller_b, make_product, add_to_cart):
        a1 = add_to_cart(make_product(seller=seller_a, name="Tomat"), quantity=1)
        a2 = add_to_cart(make_product(seller=seller_a, name="Cabai"), quantity=1)
        b1 = add_to_cart(make_product(seller=seller_b, name="Bayam"), quantity=4)
        keep = add_to_cart(make_product(seller=seller_b, name="Kangkung"), quantity=1)

        result = place_orders(buyer.id, [a1.id, a2.id, b1.id])

        assert len(result["orders"]) == 2
        orders = {o.seller_id: o for o in Order.objects.filter(buyer=buyer)}
        assert set(orders) == {seller_a.id, seller_b.id}
        assert sorted(orders[seller_a.id].items.values_list("product_name", flat=True)) == ["Cabai", "Tomat"]
        assert list(orders[seller_b.id].items.values_list("product_name", flat=True)) == ["Bayam"]
        assert list(CartItem.objects.filter(cart__buyer=buyer).values_list("id", flat=True)) == [keep.id]

        summary = result["payment_summary"]
        assert summary["total_orders"] == 2
        assert summary["grand_total"] == sum(o.total_amount for o in orders.values())
        assert summary["payment_instructions"]["amount"] == summary["grand_total"]
        assert summary["payment_instructions"]["bank_name"] == "Bank Mandiri"

    def test_items_snapshot_discount(self, buyer, make_product, make_discount, add_to_cart):
        product = make_product(price="10000", image_url="https://img.example.com/tomat.jpg")
        make_discount(product, value="10")
        item = add_to_cart(product, quantity=2)

        result = place_orders(buyer.id, [item.id])

        order = Order.objects.get(id=result["orders"][0]["order_id"])
        line = order.items.get()
        assert line.unit_price == Decimal("10000.00")
        assert line.discount == Decimal("2000.00")
        assert line.subtotal == Decimal("18000.00")
        assert line.product_image == "https://img.example.com/tomat.jpg"
        assert order.total_discount == Decimal("2000.00")

        product.name = "Tomat Cherry"
        product.save()
        line.refresh_from_db()
        assert line.product_name == "Tomat"

    def test_free_delivery_applied_at_checkout(self, buyer, make_product, add_to_cart):
        item = add_to_cart(make_product(price="50000"), quantity=2)
        result = place_orders(buyer.id, [item.id])
        order = Order.objects.get(id=result["orders"][0]["order_id"])
        assert order.delivery_fee == Decimal("0.00")
        assert order.total_amount == Decimal("102000.00")

    def test_flat_fee_when_charge_does_not_match_preview(self, settings, buyer, make_product, add_to_cart):
        settings.CHARGE_MATCHES_PREVIEW = False
        item = add_to_cart(make_product(price="50000"), quantity=2)
        result = place_orders(buyer.id, [item.id])
        assert result["orders"][0]["total_amount"] == Decimal("117000.00")

    def test_empty_selection(self, buyer):
        with pytest.raises(ValidationError):
            place_orders(buyer.id, [])

    def test_foreign_items_not_found(self, buyer, other_buyer, make_product, add_to_cart):
        theirs = add_to_cart(make_product(), quantity=1, member=other_buyer)
        with pytest.raises(NotFound):
            place_orders(buyer.id, [theirs.id])
        assert CartItem.objects.filter(id=theirs.id).exists()
        assert not Order.objects.exists()

    def test_unavailable_item_rejected(self, buyer, make_product, add_to_cart):
        ok = add_to_cart(make_product(name="Tomat"), quantity=1)
        gone = add_to_cart(make_product(name="Jagung", is_available=False), quantity=1)
        with pytest.raises(ValidationError):
            place_orders(buyer.id, [ok.id, gone.id])
        assert CartItem.objects.filter(id__in=[ok.id, gone.id]).count() == 2

    def test_foreign_address_not_found(self, buyer, other_buyer, make_product, add_to_cart):
        from catalog.models import Address

        theirs = Address.objects.create(member=other_buyer, recipient_name="Sari", phone="1", full_address="x")
        item = add_to_cart(make_product(), quantity=1)
        with pytest.raises(NotFound):
            place_orders(buyer.id, [item.id], delivery_address_id=theirs.id)

    def test_failure_rolls_back_every_seller_group(self, monkeypatch, buyer, seller_a, seller_b,
                                                   make_product, add_to_cart):
        a = add_to_cart(make_product(seller=seller_a, name="Tomat"), quantity=1)
        b = add_to_cart(make_product(seller=seller_b, name="Bayam"), quantity=1)
        real_bulk_create = OrderItem.objects.bulk_create
        calls = []

        def failing_bulk_create(objs, *args, **kwargs):
            calls.append(objs)
            if len(calls) == 2:
                raise RuntimeError("database went away")
            return real_bulk_create(objs, *args, **kwargs)

        monkeypatch.setattr(OrderItem.objects, "bulk_create", failing_bulk_create)

        with pytest.raises(RuntimeError):
            place_orders(buyer.id, [a.id, b.id])

        assert not Order.objects.exists()
        assert CartItem.objects.filter(id__in=[a.id, b.id]).count() == 2

    def test_order_number_collision_regenerates(self, monkeypatch, buyer, seller_a, make_product, add_to_cart):
        first = add_to_cart(make_product(name="Tomat"), quantity=1)
        place_orders(buyer.id, [first.id])
        taken = Order.objects.get().order_number

        numbers = iter([taken, "FM20991231999"])
        monkeypatch.setattr(checkout, "generate_order_number", lambda: next(numbers))
        second = add_to_cart(make_product(name="Cabai"), quantity=1)

        result = place_orders(buyer.id, [second.id])
        assert result["orders"][0]["order_number"] == "FM20991231999"

    def test_order_number_collision_gives_up(self, monkeypatch, settings, buyer, make_product, add_to_cart):
        settings.ORDER_NUMBER_ATTEMPTS = 2
        first = add_to_cart(make_product(name="Tomat"), quantity=1)
        place_orders(buyer.id, [first.id])
        taken = Order.objects.get().order_number

        monkeypatch.setattr(checkout, "generate_order_number", lambda: taken)
        second = add_to_cart(make_product(name="Cabai"), quantity=1)
        with pytest.raises(IntegrityError):
            place_orders(buyer.id, [second.id])
        assert CartItem.objects.filter(id=second.id).exists()

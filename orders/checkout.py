# orders/checkout.py
"""
Checkout: turn selected cart items into one order per seller.

The whole split runs in a single transaction with the consumed cart rows
locked, so either every seller group becomes an order and leaves the cart,
or nothing changes.
"""
import logging
import random
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from catalog.models import Address

from . import notifications, pricing
from .models import CartItem, Order, OrderItem
from .transitions import INITIAL_STATUS

logger = logging.getLogger("harvest.checkout")


def generate_order_number(today=None):
    """``FM`` + ``YYYYMMDD`` + 3 random digits."""
    today = today or timezone.localdate()
    return f"FM{today:%Y%m%d}{random.randint(0, 999):03d}"


def _create_order(fields, attempts):
    last_error = None
    for _ in range(attempts):
        number = generate_order_number()
        try:
            with transaction.atomic():
                return Order.objects.create(order_number=number, **fields)
        except IntegrityError as exc:
            if not Order.objects.filter(order_number=number).exists():
                raise
            logger.info("Order number %s already taken, regenerating", number)
            last_error = exc
    raise last_error


def split_by_seller(cart_items):
    """Group cart items by seller id, keeping first-seen order."""
    groups = {}
    for item in cart_items:
        groups.setdefault(item.product.seller_id, []).append(item)
    return groups


def seller_totals(items, now=None):
    """Price one seller group: returns (totals dict, list of priced line dicts)."""
    lines = []
    for item in items:
        unit_price, discount_price, subtotal = pricing.line_pricing(item.product, item.quantity, now)
        lines.append({
            "cart_item": item,
            "unit_price": unit_price,
            "discount": pricing.line_discount(unit_price, discount_price, item.quantity),
            "subtotal": subtotal,
        })

    subtotal = sum((line["subtotal"] for line in lines), pricing.ZERO)
    total_discount = sum((line["discount"] for line in lines), pricing.ZERO)
    if getattr(settings, "CHARGE_MATCHES_PREVIEW", True):
        delivery_fee = pricing.fee_for_subtotal(subtotal)
    else:
        delivery_fee = pricing.delivery_fee()
    service_fee = pricing.service_fee()
    totals = {
        "subtotal": pricing.money(subtotal),
        "delivery_fee": delivery_fee,
        "service_fee": service_fee,
        "total_discount": pricing.money(total_discount),
        "total_amount": pricing.money(subtotal + delivery_fee + service_fee),
    }
    return totals, lines


def place_orders(buyer_id, cart_item_ids, delivery_address_id=None, delivery_method="home_delivery",
                 delivery_date=None, delivery_time_slot="morning", payment_method="bank_transfer",
                 notes=None):
    if not cart_item_ids:
        raise ValidationError("No cart items selected")

    now = timezone.now()
    with transaction.atomic():
        cart_items = list(
            CartItem.objects.select_for_update()
            .filter(id__in=cart_item_ids, cart__buyer_id=buyer_id)
            .select_related("product", "product__seller")
            .prefetch_related("product__discounts")
            .order_by("added_at", "id")
        )
        if not cart_items:
            raise NotFound("No valid cart items found")

        unavailable = [i for i in cart_items if not (i.is_available and i.product.is_available)]
        if unavailable:
            names = ", ".join(i.product.name for i in unavailable)
            raise ValidationError(f"Some items are no longer available: {names}")

        if delivery_address_id is not None:
            if not Address.objects.filter(id=delivery_address_id, member_id=buyer_id).exists():
                raise NotFound("Delivery address not found")

        attempts = getattr(settings, "ORDER_NUMBER_ATTEMPTS", 5)
        created = []
        for seller_id, items in split_by_seller(cart_items).items():
            totals, lines = seller_totals(items, now)
            order = _create_order({
                "buyer_id": buyer_id,
                "seller_id": seller_id,
                "status": INITIAL_STATUS,
                "payment_method": payment_method,
                "payment_status": "pending",
                "delivery_method": delivery_method,
                "delivery_address_id": delivery_address_id,
                "delivery_date": delivery_date,
                "delivery_time_slot": delivery_time_slot,
                "notes": notes,
                "created_at": now,
                **totals,
            }, attempts)
            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    product=line["cart_item"].product,
                    product_name=line["cart_item"].product.name,
                    product_image=line["cart_item"].product.image_url,
                    quantity=line["cart_item"].quantity,
                    unit_price=line["unit_price"],
                    discount=line["discount"],
                    subtotal=line["subtotal"],
                )
                for line in lines
            ])
            CartItem.objects.filter(id__in=[item.id for item in items]).delete()
            notifications.notify_seller_new_order(order)
            created.append(order)

    grand_total = sum((o.total_amount for o in created), pricing.ZERO)
    logger.info(
        "Checkout buyer=%s created %d order(s) %s grand_total=%s",
        buyer_id, len(created), ",".join(o.order_number for o in created), grand_total,
    )
    window = timedelta(hours=getattr(settings, "PAYMENT_WINDOW_HOURS", 24))
    instructions = dict(getattr(settings, "BANK_TRANSFER_INSTRUCTIONS", {}))
    instructions.update({"amount": grand_total, "valid_until": now + window})
    return {
        "orders": [
            {
                "order_id": o.id,
                "order_number": o.order_number,
                "status": o.status,
                "total_amount": o.total_amount,
            }
            for o in created
        ],
        "payment_summary": {
            "total_orders": len(created),
            "grand_total": grand_total,
            "payment_method": payment_method,
            "payment_instructions": instructions,
        },
    }

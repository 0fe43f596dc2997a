# orders/pricing.py
"""
Cart pricing and the grouped cart preview.

Every line is priced from the live product and its best active discount,
so the preview and the checkout charge come from the same numbers.
"""
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.utils import timezone

CENT = Decimal("0.01")
ZERO = Decimal("0")


def money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def delivery_fee():
    return money(getattr(settings, "DELIVERY_FEE", Decimal("15000")))


def service_fee():
    return money(getattr(settings, "SERVICE_FEE", Decimal("2000")))


def free_delivery_threshold():
    return money(getattr(settings, "FREE_DELIVERY_THRESHOLD", Decimal("100000")))


def active_discount(product, now=None):
    """Highest-value discount active at ``now``, or None."""
    now = now or timezone.now()
    # uses the prefetch cache when the caller prefetched ``discounts``
    candidates = [d for d in product.discounts.all() if d.is_active_at(now)]
    if not candidates:
        return None
    return max(candidates, key=lambda d: d.value)


def discounted_price(price, discount):
    if discount is None:
        return None
    if discount.type == "percentage":
        reduced = price * (Decimal("1") - discount.value / Decimal("100"))
    else:
        reduced = price - discount.value
    return money(max(reduced, ZERO))


def line_pricing(product, quantity, now=None):
    """Return ``(unit_price, discount_price, subtotal)`` for ``quantity`` of ``product``."""
    unit_price = money(product.price)
    discount_price = discounted_price(unit_price, active_discount(product, now))
    effective = discount_price if discount_price is not None else unit_price
    return unit_price, discount_price, money(effective * quantity)


def line_discount(unit_price, discount_price, quantity):
    if discount_price is None:
        return ZERO.quantize(CENT)
    return money((unit_price - discount_price) * quantity)


def fee_for_subtotal(subtotal):
    """Delivery fee for one seller group, waived at or above the free-delivery threshold."""
    if subtotal >= free_delivery_threshold():
        return ZERO.quantize(CENT)
    return delivery_fee()


def _format_item(item, now):
    product = item.product
    seller = product.seller
    discount = active_discount(product, now)
    unit_price, discount_price, subtotal = line_pricing(product, item.quantity, now)
    return {
        "cart_item_id": item.id,
        "product": {
            "product_id": product.id,
            "name": product.name,
            "price": unit_price,
            "discount": {
                "discounted_price": discount_price,
                "type": discount.type,
                "value": discount.value,
                "valid_until": discount.valid_until,
            } if discount else None,
            "image": product.image_url,
            "unit": product.unit,
            "stock_quantity": product.stock_quantity,
            "minimum_order": product.minimum_order,
            "maximum_order": product.maximum_order,
            "seller": {
                "user_id": seller.id,
                "name": seller.name,
                "avatar": seller.avatar_url,
            },
            "availability": {"status": "in_stock" if product.in_stock else "out_of_stock"},
        },
        "quantity": item.quantity,
        "unit_price": unit_price,
        "discount_price": discount_price,
        "subtotal": subtotal,
        "notes": item.notes,
        "is_selected": item.is_selected,
        "is_available": item.is_available and product.is_available,
        "added_at": item.added_at,
        "updated_at": item.updated_at,
    }


def summarize_cart(cart, now=None):
    """
    Build the grouped cart view for ``cart``.

    Read-only: items are repriced in memory and nothing is saved.
    Unavailable items are reported separately and excluded from all totals.
    """
    now = now or timezone.now()
    items = (
        cart.items.select_related("product", "product__seller")
        .prefetch_related("product__discounts")
        .order_by("added_at", "id")
    )
    formatted = [_format_item(item, now) for item in items]

    threshold = free_delivery_threshold()
    groups = {}
    for entry in formatted:
        seller = entry["product"]["seller"]
        group = groups.setdefault(seller["user_id"], {
            "seller": seller,
            "items": [],
            "subtotal": ZERO.quantize(CENT),
        })
        group["items"].append(entry)
        if entry["is_selected"] and entry["is_available"]:
            group["subtotal"] += entry["subtotal"]

    grouped = []
    total_delivery_fee = ZERO.quantize(CENT)
    for group in groups.values():
        subtotal = group["subtotal"]
        eligible = subtotal >= threshold
        fee = fee_for_subtotal(subtotal)
        total_delivery_fee += fee
        grouped.append({
            "seller": group["seller"],
            "items": group["items"],
            "subtotal": subtotal,
            "delivery_fee": delivery_fee(),
            "free_delivery_threshold": threshold,
            "is_eligible_free_delivery": eligible,
            "amount_for_free_delivery": max(ZERO.quantize(CENT), threshold - subtotal),
            "total": subtotal + fee,
        })

    counted = [e for e in formatted if e["is_selected"] and e["is_available"]]
    subtotal = sum((e["subtotal"] for e in counted), ZERO.quantize(CENT))
    total_discount = sum(
        (line_discount(e["unit_price"], e["discount_price"], e["quantity"]) for e in counted),
        ZERO.quantize(CENT),
    )
    fee = service_fee()

    return {
        "cart_id": cart.id,
        "items": formatted,
        "grouped_by_seller": grouped,
        "summary": {
            "total_items": len(formatted),
            "total_quantity": sum(e["quantity"] for e in formatted),
            "subtotal": subtotal,
            "total_discount": total_discount,
            "total_delivery_fee": total_delivery_fee,
            "service_fee": fee,
            "grand_total": subtotal + total_delivery_fee + fee,
        },
        "unavailable_items": [e for e in formatted if not e["is_available"]],
        "updated_at": cart.updated_at,
    }

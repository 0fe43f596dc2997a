# orders/transitions.py
"""
Order status state machine.

The table is the only source of legal status changes; sellers, buyers
cancelling and the expiry sweep all go through ``apply_transition``.
"""
import logging

from django.utils import timezone

from .exceptions import InvalidTransition

logger = logging.getLogger("harvest.orders")

INITIAL_STATUS = "pending_payment"
TERMINAL_STATUSES = frozenset({"completed", "cancelled"})
AWAITING_PAYMENT = ("pending_payment", "pending")

VALID_TRANSITIONS = {
    "pending_payment": ("confirmed", "cancelled"),
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered",),
    "delivered": ("completed",),
    "completed": (),
    "cancelled": (),
}


def allowed_targets(current):
    return VALID_TRANSITIONS.get(current, ())


def can_transition(current, target):
    return target in allowed_targets(current)


def apply_transition(order, target, cancelled_reason=None, now=None):
    """
    Move ``order`` to ``target`` in memory; the caller saves it.

    Raises InvalidTransition and leaves the order untouched when the table
    does not allow the move. Returns the list of changed field names.
    """
    current = order.status
    if not can_transition(current, target):
        logger.info("Rejected transition order=%s %s -> %s", order.order_number, current, target)
        raise InvalidTransition(current, target)

    order.status = target
    changed = ["status"]
    if target == "cancelled":
        order.cancelled_at = now or timezone.now()
        changed.append("cancelled_at")
        if cancelled_reason:
            order.cancelled_reason = cancelled_reason
            changed.append("cancelled_reason")
    logger.info("Order %s %s -> %s", order.order_number, current, target)
    return changed

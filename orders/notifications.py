# orders/notifications.py
import logging

import requests
from django.conf import settings
from django.db import transaction

logger = logging.getLogger("harvest.notifications")


def _post(payload):
    url = getattr(settings, "NOTIFICATION_WEBHOOK_URL", "")
    if not url:
        return False
    timeout = getattr(settings, "NOTIFICATION_TIMEOUT", 3)
    try:
        resp = requests.post(url, json=payload, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        # delivery is best effort; the order change itself already committed
        logger.warning("Notification %s for order %s failed: %s", payload["event"], payload["order_number"], exc)
        return False
    return True


def _payload(order, event, recipient_id):
    return {
        "event": event,
        "recipient_id": recipient_id,
        "order_id": order.id,
        "order_number": order.order_number,
        "status": order.status,
        "total_amount": str(order.total_amount),
    }


def notify_seller_new_order(order):
    payload = _payload(order, "order.created", order.seller_id)
    transaction.on_commit(lambda: _post(payload))


def notify_buyer_status(order, event):
    payload = _payload(order, f"order.{event}", order.buyer_id)
    transaction.on_commit(lambda: _post(payload))


def notify_seller_status(order, event):
    payload = _payload(order, f"order.{event}", order.seller_id)
    transaction.on_commit(lambda: _post(payload))

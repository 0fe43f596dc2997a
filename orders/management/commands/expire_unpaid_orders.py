# orders/management/commands/expire_unpaid_orders.py
import logging
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from orders import notifications
from orders.models import Order
from orders.transitions import AWAITING_PAYMENT, apply_transition

logger = logging.getLogger("harvest.expiry")

EXPIRY_REASON = "Payment window expired"


class Command(BaseCommand):
    help = "Cancel orders still awaiting payment after the payment window. Safe to run repeatedly."

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours", type=int, default=None,
            help="Payment window in hours (default: PAYMENT_WINDOW_HOURS setting)",
        )
        parser.add_argument("--dry-run", action="store_true", help="List the orders without cancelling them")

    def handle(self, *args, **options):
        hours = options["hours"] if options["hours"] is not None else getattr(settings, "PAYMENT_WINDOW_HOURS", 24)
        now = timezone.now()
        cutoff = now - timedelta(hours=hours)
        stale = Order.objects.filter(status__in=AWAITING_PAYMENT, payment_status="pending", created_at__lt=cutoff)

        expired = 0
        for order_id in stale.values_list("id", flat=True):
            with transaction.atomic():
                # re-read under lock; a concurrent update may have moved it on
                order = Order.objects.select_for_update().filter(
                    id=order_id, status__in=AWAITING_PAYMENT, payment_status="pending",
                ).first()
                if order is None:
                    continue
                if options["dry_run"]:
                    self.stdout.write(f"would expire {order.order_number}")
                    continue
                changed = apply_transition(order, "cancelled", cancelled_reason=EXPIRY_REASON, now=now)
                order.save(update_fields=changed + ["updated_at"])
                notifications.notify_buyer_status(order, "expired")
                expired += 1

        logger.info("Expired %d unpaid order(s) older than %dh", expired, hours)
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} order(s)"))

# orders/views.py
import logging

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import Product
from . import notifications, pricing
from .checkout import place_orders
from .models import Cart, CartItem, Order
from .permissions import IsAuthenticatedMember, IsOrderParticipant
from .serializers import (
    CartItemCreateSerializer,
    CartItemSelectSerializer,
    CartItemUpdateSerializer,
    CheckoutSerializer,
    OrderCancelSerializer,
    OrderDetailSerializer,
    OrderListSerializer,
    OrderStatusSerializer,
    OrderStatusUpdateSerializer,
    SellerOrderListSerializer,
    SellerOrderSerializer,
)
from .transitions import VALID_TRANSITIONS, apply_transition

logger = logging.getLogger("harvest.orders")


def success(data=None, message=None, status_code=status.HTTP_200_OK):
    body = {"status": "success"}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return Response(body, status=status_code)


def check_quantity_bounds(product, quantity):
    if quantity < product.minimum_order:
        raise ValidationError(f"Minimum order for {product.name} is {product.minimum_order}")
    if product.maximum_order is not None and quantity > product.maximum_order:
        raise ValidationError(f"Maximum order for {product.name} is {product.maximum_order}")


def reprice(item):
    item.unit_price, item.discount_price, item.subtotal = pricing.line_pricing(item.product, item.quantity)


def cart_totals(cart):
    items = list(cart.items.all())
    return len(items), sum((i.subtotal for i in items), pricing.ZERO)


# ---------------- CART ----------------
class CartView(APIView):
    def get(self, request):
        cart, _ = Cart.objects.get_or_create(buyer_id=request.user.id)
        return success(pricing.summarize_cart(cart))

    def delete(self, request):
        deleted, _ = CartItem.objects.filter(cart__buyer_id=request.user.id).delete()
        logger.info("Cleared cart of buyer=%s (%d item(s))", request.user.id, deleted)
        return success(message="Cart cleared successfully")


class CartItemViewSet(viewsets.GenericViewSet):
    def get_queryset(self):
        # foreign items resolve to 404
        return CartItem.objects.filter(cart__buyer_id=self.request.user.id).select_related("product", "cart")

    def create(self, request):
        params = CartItemCreateSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        data = params.validated_data

        product = Product.objects.filter(pk=data["product_id"]).first()
        if product is None:
            raise NotFound("Product not found")

        cart, _ = Cart.objects.get_or_create(buyer_id=request.user.id)
        item = CartItem.objects.filter(cart=cart, product=product).first()
        if item:
            item.quantity += data["quantity"]
            item.notes = data.get("notes") or item.notes
        else:
            item = CartItem(cart=cart, product=product, quantity=data["quantity"], notes=data.get("notes"))
        check_quantity_bounds(product, item.quantity)
        reprice(item)
        item.save()

        total_items, grand_total = cart_totals(cart)
        return success({
            "cart_item_id": item.id,
            "product_id": item.product_id,
            "quantity": item.quantity,
            "subtotal": item.subtotal,
            "cart_total_items": total_items,
            "cart_grand_total": grand_total,
        }, message="Product added to cart", status_code=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        item = self.get_object()
        params = CartItemUpdateSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        data = params.validated_data

        if "quantity" in data:
            check_quantity_bounds(item.product, data["quantity"])
            item.quantity = data["quantity"]
            reprice(item)
        if "notes" in data:
            item.notes = data["notes"]
        item.save()

        _, grand_total = cart_totals(item.cart)
        return success({
            "cart_item_id": item.id,
            "quantity": item.quantity,
            "subtotal": item.subtotal,
            "cart_grand_total": grand_total,
        }, message="Cart item updated")

    def destroy(self, request, pk=None):
        item = self.get_object()
        cart = item.cart
        item.delete()
        total_items, grand_total = cart_totals(cart)
        return success({"cart_total_items": total_items, "cart_grand_total": grand_total},
                       message="Item removed from cart")

    @action(detail=True, methods=["patch"], url_path="select")
    def select(self, request, pk=None):
        item = self.get_object()
        params = CartItemSelectSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        item.is_selected = params.validated_data["is_selected"]
        item.save(update_fields=["is_selected", "updated_at"])

        selected = item.cart.items.filter(is_selected=True)
        return success({
            "cart_item_id": item.id,
            "is_selected": item.is_selected,
            "selected_items_total": sum((i.subtotal for i in selected), pricing.ZERO),
        }, message="Item selection updated")


# ---------------- BUYER ORDERS ----------------
class OrderViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticatedMember, IsOrderParticipant]

    def get_queryset(self):
        user_id = self.request.user.id
        qs = Order.objects.select_related("seller", "delivery_address").prefetch_related("items__product")
        if self.action == "list":
            role = self.request.query_params.get("role", "buyer")
            qs = qs.filter(seller_id=user_id) if role == "seller" else qs.filter(buyer_id=user_id)
            status_filter = self.request.query_params.get("status")
            if status_filter:
                qs = qs.filter(status=status_filter)
            return qs
        return qs.filter(Q(buyer_id=user_id) | Q(seller_id=user_id))

    def get_serializer_class(self):
        if self.action == "list":
            return OrderListSerializer
        return OrderDetailSerializer

    def retrieve(self, request, pk=None):
        return success(self.get_serializer(self.get_object()).data)

    def create(self, request):
        """Checkout: one order per seller from the selected cart items."""
        params = CheckoutSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        result = place_orders(request.user.id, **params.validated_data)
        return success(result, message="Order created successfully", status_code=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch"], url_path="cancel")
    def cancel(self, request, pk=None):
        params = OrderCancelSerializer(data=request.data)
        params.is_valid(raise_exception=True)

        with transaction.atomic():
            order = get_object_or_404(self.get_queryset().select_for_update(of=("self",)), pk=pk)
            self.check_object_permissions(request, order)
            changed = apply_transition(order, "cancelled", cancelled_reason=params.cancelled_reason())
            order.save(update_fields=changed + ["updated_at"])
            if order.seller_id == request.user.id:
                notifications.notify_buyer_status(order, "cancelled")
            else:
                notifications.notify_seller_status(order, "cancelled")

        refund = None
        if order.paid_at:
            refund = {"amount": order.total_amount, "method": order.payment_method, "estimated_days": 7}
        return success({"order_id": order.id, "status": order.status, "refund": refund},
                       message="Order cancelled successfully")


# ---------------- FARMER (SELLER) ORDERS ----------------
class FarmerOrderViewSet(viewsets.GenericViewSet):
    serializer_class = SellerOrderSerializer

    def get_queryset(self):
        return (
            Order.objects.filter(seller_id=self.request.user.id)
            .select_related("buyer", "delivery_address")
            .prefetch_related("items__product", "reviews")
        )

    def order_stats(self):
        stats = {"total_orders": 0}
        stats.update({name: 0 for name in VALID_TRANSITIONS})
        stats["total_revenue"] = pricing.ZERO
        rows = (
            Order.objects.filter(seller_id=self.request.user.id)
            .values("status")
            .annotate(count=Count("id"), revenue=Sum("total_amount"))
        )
        for row in rows:
            stats[row["status"]] = row["count"]
            stats["total_orders"] += row["count"]
            if row["status"] != "cancelled":
                stats["total_revenue"] += row["revenue"] or pricing.ZERO
        return stats

    def list(self, request):
        qs = self.get_queryset()
        status_filter = request.query_params.get("status", "all")
        if status_filter != "all":
            qs = qs.filter(status=status_filter)

        page = self.paginate_queryset(qs)
        return Response({
            "status": "success",
            "data": SellerOrderListSerializer(page, many=True).data,
            "stats": self.order_stats(),
            "pagination": self.paginator.pagination_meta(),
        })

    def retrieve(self, request, pk=None):
        order = get_object_or_404(self.get_queryset(), pk=pk)
        return success(SellerOrderSerializer(order).data)

    def partial_update(self, request, pk=None):
        params = OrderStatusUpdateSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        data = params.validated_data

        with transaction.atomic():
            order = get_object_or_404(
                Order.objects.select_for_update().filter(seller_id=request.user.id), pk=pk,
            )
            changed = []
            if data.get("status"):
                changed += apply_transition(order, data["status"], cancelled_reason=data.get("cancelled_reason"))
            if "tracking_number" in data:
                order.tracking_number = data["tracking_number"]
                changed.append("tracking_number")
            if "estimated_arrival" in data:
                order.estimated_arrival = data["estimated_arrival"]
                changed.append("estimated_arrival")
            if changed:
                order.save(update_fields=changed + ["updated_at"])
            if "status" in changed:
                notifications.notify_buyer_status(order, order.status)

        return success(OrderStatusSerializer(order).data, message="Order updated successfully")

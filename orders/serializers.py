# orders/serializers.py
from rest_framework import serializers

from catalog.models import Address
from .models import Order, OrderItem, Review
from .transitions import VALID_TRANSITIONS

DATE_INPUT_FORMATS = ["iso-8601", "%Y-%m-%d"]


# ---------------- REQUESTS ----------------
class CartItemCreateSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CartItemUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CartItemSelectSerializer(serializers.Serializer):
    is_selected = serializers.BooleanField(
        error_messages={"required": "is_selected is required"},
    )


class CheckoutSerializer(serializers.Serializer):
    cart_item_ids = serializers.ListField(
        child=serializers.IntegerField(),
        allow_empty=True,
        required=False,
        default=list,
    )
    delivery_address_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    delivery_method = serializers.ChoiceField(choices=Order.DELIVERY_METHOD_CHOICES, default="home_delivery")
    delivery_date = serializers.DateTimeField(
        required=False, allow_null=True, default=None, input_formats=DATE_INPUT_FORMATS,
    )
    delivery_time_slot = serializers.CharField(max_length=32, default="morning")
    payment_method = serializers.CharField(max_length=32, default="bank_transfer")
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=list(VALID_TRANSITIONS), required=False)
    tracking_number = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    estimated_arrival = serializers.DateTimeField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)
    cancelled_reason = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class OrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField()
    details = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def cancelled_reason(self):
        reason = self.validated_data["reason"]
        details = self.validated_data.get("details")
        return f"{reason}: {details}" if details else reason


# ---------------- RESPONSES ----------------
class AddressSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="recipient_name")
    address = serializers.CharField(source="full_address")
    state = serializers.CharField(source="province")

    class Meta:
        model = Address
        fields = ("id", "name", "phone", "address", "city", "state", "postal_code")


class OrderItemSerializer(serializers.ModelSerializer):
    unit = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ("id", "product_id", "product_name", "product_image", "unit",
                  "quantity", "unit_price", "discount", "subtotal")

    def get_unit(self, obj):
        return obj.product.unit if obj.product_id else None


class ReviewSerializer(serializers.ModelSerializer):
    class Meta:
        model = Review
        fields = ("id", "rating", "comment", "created_at")


class MemberSummarySerializer(serializers.Serializer):
    user_id = serializers.IntegerField(source="id")
    name = serializers.CharField()
    profile_picture = serializers.CharField(source="avatar_url", allow_null=True)


class BuyerContactSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    email = serializers.EmailField()
    phone = serializers.CharField(source="phone_number")
    avatar = serializers.CharField(source="avatar_url", allow_null=True)


class OrderListSerializer(serializers.ModelSerializer):
    """Row of the buyer/seller order list."""

    order_id = serializers.IntegerField(source="id")
    seller = MemberSummarySerializer()
    items = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()
    total_quantity = serializers.SerializerMethodField()
    delivery = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ("order_id", "order_number", "status", "seller", "items", "item_count",
                  "total_quantity", "total_amount", "currency", "delivery", "created_at")

    def get_items(self, obj):
        return [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit": item.product.unit if item.product_id else None,
                "image": item.product_image,
            }
            for item in list(obj.items.all())[:3]
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())

    def get_total_quantity(self, obj):
        return sum(item.quantity for item in obj.items.all())

    def get_delivery(self, obj):
        return {
            "method": obj.delivery_method,
            "date": obj.delivery_date,
            "tracking_number": obj.tracking_number,
        }


class OrderDetailSerializer(serializers.ModelSerializer):
    """Buyer-facing order detail with pricing, payment and timeline."""

    order_id = serializers.IntegerField(source="id")
    seller = MemberSummarySerializer()
    items = serializers.SerializerMethodField()
    delivery = serializers.SerializerMethodField()
    pricing = serializers.SerializerMethodField()
    payment = serializers.SerializerMethodField()
    timeline = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ("order_id", "order_number", "status", "seller", "items", "delivery", "pricing",
                  "payment", "timeline", "notes", "cancelled_reason", "created_at", "updated_at")

    def get_items(self, obj):
        return [
            {
                "order_item_id": item.id,
                "product": {
                    "product_id": item.product_id,
                    "name": item.product_name,
                    "image": item.product_image,
                },
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "discount": item.discount,
                "subtotal": item.subtotal,
            }
            for item in obj.items.all()
        ]

    def get_delivery(self, obj):
        address = obj.delivery_address
        return {
            "method": obj.delivery_method,
            "address": {
                "address_id": address.id,
                "full_address": address.full_address,
                "recipient_name": address.recipient_name,
                "phone": address.phone,
            } if address else None,
            "date": obj.delivery_date,
            "time_slot": obj.delivery_time_slot,
            "fee": obj.delivery_fee,
            "tracking_number": obj.tracking_number,
            "estimated_arrival": obj.estimated_arrival,
        }

    def get_pricing(self, obj):
        return {
            "subtotal": obj.subtotal,
            "delivery_fee": obj.delivery_fee,
            "service_fee": obj.service_fee,
            "total_discount": obj.total_discount,
            "total": obj.total_amount,
        }

    def get_payment(self, obj):
        return {"method": obj.payment_method, "status": obj.payment_status, "paid_at": obj.paid_at}

    def get_timeline(self, obj):
        timeline = [{"status": "pending_payment", "timestamp": obj.created_at}]
        if obj.paid_at:
            timeline.append({"status": "paid", "timestamp": obj.paid_at})
        if obj.cancelled_at:
            timeline.append({"status": "cancelled", "timestamp": obj.cancelled_at})
        return timeline


class SellerOrderSerializer(serializers.ModelSerializer):
    """Order as the farmer sees it: buyer contact, address and reviews."""

    buyer = BuyerContactSerializer()
    items = OrderItemSerializer(many=True)
    delivery_address = AddressSerializer(allow_null=True)
    reviews = ReviewSerializer(many=True)

    class Meta:
        model = Order
        fields = ("id", "order_number", "status", "buyer", "items", "subtotal", "delivery_fee",
                  "service_fee", "total_discount", "total_amount", "payment_method", "payment_status",
                  "delivery_method", "delivery_address", "delivery_date", "delivery_time_slot",
                  "tracking_number", "estimated_arrival", "notes", "cancelled_reason", "cancelled_at",
                  "paid_at", "reviews", "created_at", "updated_at")


class SellerOrderListSerializer(SellerOrderSerializer):
    reviews = None

    class Meta(SellerOrderSerializer.Meta):
        fields = tuple(f for f in SellerOrderSerializer.Meta.fields if f != "reviews")


class OrderStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = ("id", "order_number", "status", "tracking_number", "estimated_arrival",
                  "cancelled_reason", "cancelled_at", "updated_at")

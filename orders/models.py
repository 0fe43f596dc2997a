# orders/models.py
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from catalog.models import Address, Member, Product


class Cart(models.Model):
    buyer = models.OneToOneField(Member, related_name="cart", on_delete=models.CASCADE)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart {self.id} buyer={self.buyer_id}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey(Product, related_name="cart_items", on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)  # product price when last priced
    discount_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    notes = models.TextField(null=True, blank=True)
    is_selected = models.BooleanField(default=True)
    is_available = models.BooleanField(default=True)
    added_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("added_at", "id")
        constraints = [
            models.UniqueConstraint(fields=["cart", "product"], name="unique_product_per_cart"),
        ]

    def __str__(self):
        return f"{self.product_id} x {self.quantity} (cart {self.cart_id})"


class Order(models.Model):
    STATUS_CHOICES = [
        ("pending_payment", "Pending payment"),  # created at checkout
        ("pending", "Pending"),                  # legacy synonym of pending_payment
        ("confirmed", "Confirmed"),              # seller accepted
        ("processing", "Processing"),
        ("shipped", "Shipped"),
        ("delivered", "Delivered"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("refunded", "Refunded"),
    ]

    DELIVERY_METHOD_CHOICES = [
        ("home_delivery", "Home delivery"),
        ("pickup", "Pickup"),
    ]

    order_number = models.CharField(max_length=16, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending_payment", db_index=True)
    buyer = models.ForeignKey(Member, related_name="purchases", on_delete=models.PROTECT)
    seller = models.ForeignKey(Member, related_name="sales", on_delete=models.PROTECT)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    service_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=8, default="IDR")

    payment_method = models.CharField(max_length=32, default="bank_transfer")
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default="pending")

    delivery_method = models.CharField(max_length=20, choices=DELIVERY_METHOD_CHOICES, default="home_delivery")
    delivery_address = models.ForeignKey(Address, null=True, blank=True, on_delete=models.SET_NULL)
    delivery_date = models.DateTimeField(null=True, blank=True)
    delivery_time_slot = models.CharField(max_length=32, default="morning")
    tracking_number = models.CharField(max_length=64, null=True, blank=True)
    estimated_arrival = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    cancelled_reason = models.TextField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"Order {self.order_number} seller={self.seller_id} buyer={self.buyer_id} status={self.status}"


class OrderItem(models.Model):
    """Snapshot of a purchased line; does not follow later product edits."""

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey(Product, null=True, blank=True, related_name="order_items", on_delete=models.SET_NULL)
    product_name = models.CharField(max_length=255)
    product_image = models.URLField(null=True, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))  # line total discount
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ("id",)

    def __str__(self):
        return f"{self.product_name} x {self.quantity} (order {self.order_id})"


class Review(models.Model):
    order = models.ForeignKey(Order, related_name="reviews", on_delete=models.CASCADE)
    author = models.ForeignKey(Member, related_name="reviews", on_delete=models.CASCADE)
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"Review {self.rating}/5 on order {self.order_id}"

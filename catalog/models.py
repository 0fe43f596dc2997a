# catalog/models.py
from django.db import models
from django.utils import timezone


class Member(models.Model):
    """Marketplace account. Bearer tokens carry its primary key as ``userId``."""

    USER_TYPE_CHOICES = [
        ("BUYER", "Buyer"),
        ("FARMER", "Farmer"),
        ("ADMIN", "Admin"),
    ]

    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    phone_number = models.CharField(max_length=32, blank=True, default="")
    avatar_url = models.URLField(null=True, blank=True)
    user_type = models.CharField(max_length=16, choices=USER_TYPE_CHOICES, default="BUYER")
    created_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.name} <{self.email}>"


class Product(models.Model):
    seller = models.ForeignKey(Member, related_name="products", on_delete=models.CASCADE)
    name = models.CharField(max_length=255)
    unit = models.CharField(max_length=32, default="kg")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    stock_quantity = models.PositiveIntegerField(default=0)
    minimum_order = models.PositiveIntegerField(default=1)
    maximum_order = models.PositiveIntegerField(null=True, blank=True)
    is_available = models.BooleanField(default=True)
    image_url = models.URLField(null=True, blank=True)  # primary image
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def in_stock(self):
        return self.is_available and self.stock_quantity > 0

    def __str__(self):
        return f"{self.name} ({self.price}/{self.unit})"


class Discount(models.Model):
    TYPE_CHOICES = [
        ("percentage", "Percentage off"),
        ("fixed", "Fixed amount off"),
    ]

    product = models.ForeignKey(Product, related_name="discounts", on_delete=models.CASCADE)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default="percentage")
    value = models.DecimalField(max_digits=12, decimal_places=2)
    is_active = models.BooleanField(default=True)
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()

    def is_active_at(self, moment):
        return self.is_active and self.valid_from <= moment <= self.valid_until

    def __str__(self):
        return f"{self.type} {self.value} on product {self.product_id}"


class Address(models.Model):
    member = models.ForeignKey(Member, related_name="addresses", on_delete=models.CASCADE)
    recipient_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32)
    full_address = models.TextField()
    city = models.CharField(max_length=128, blank=True, default="")
    province = models.CharField(max_length=128, blank=True, default="")
    postal_code = models.CharField(max_length=16, blank=True, default="")
    is_primary = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.recipient_name}, {self.city}"

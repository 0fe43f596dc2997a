from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import CartItemViewSet, CartView, FarmerOrderViewSet, OrderViewSet

router = SimpleRouter(trailing_slash=False)
router.register("cart/items", CartItemViewSet, basename="cart-item")
router.register("orders", OrderViewSet, basename="order")
router.register("farmer/orders", FarmerOrderViewSet, basename="farmer-order")

urlpatterns = [
    path("cart", CartView.as_view(), name="cart"),
    path("", include(router.urls)),
]

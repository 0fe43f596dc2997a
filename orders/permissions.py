# orders/permissions.py
from rest_framework import permissions

from .authentication import TokenUser


class IsAuthenticatedMember(permissions.BasePermission):
    # request.user is a TokenUser built from a verified access token
    def has_permission(self, request, view):
        return isinstance(getattr(request, "user", None), TokenUser)


class IsOrderParticipant(permissions.BasePermission):
    """
    Allow the buyer or the seller of an order to read or cancel it.
    """

    def has_object_permission(self, request, view, obj):
        user = getattr(request, "user", None)
        if not isinstance(user, TokenUser):
            return False
        return user.id in (obj.buyer_id, obj.seller_id)

"""
Custom permission classes for API endpoints.

These permissions keep every business's widgets, reviews and analytics
isolated from every other business.
"""
from rest_framework.permissions import BasePermission


def get_request_business(request):
    """
    Business owned by the authenticated user, created on first use.

    Session requests already carry it from BusinessMiddleware; for bearer
    tokens it is resolved here. Cached on the request either way.
    """
    business = getattr(request, "_smartreview_business", None) or getattr(request, "business", None)
    if business is None and request.user and request.user.is_authenticated:
        from accounts.services import ensure_business

        business = ensure_business(request.user)
    request._smartreview_business = business
    return business


class IsBusinessMember(BasePermission):
    """
    Ensures the request has a business context.
    Works with both session auth and bearer tokens.

    Object-level permission checks that the object belongs to that business.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        business = get_request_business(request)
        return business is not None and business.is_active

    def has_object_permission(self, request, view, obj):
        """
        Verify object belongs to the request's business.

        Handles direct business FKs (widgets, reviews, events, subscriptions)
        and the business itself.
        """
        business = get_request_business(request)

        if hasattr(obj, "business_id"):
            return obj.business_id == business.pk

        if obj.__class__.__name__ == "Business":
            return obj.pk == business.pk

        # Default deny
        return False

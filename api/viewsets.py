"""
DRF ViewSets for the Smart Review dashboard API.

Every queryset is scoped to the business of the authenticated user.
"""
import logging

import stripe
from django.conf import settings
from django.db import transaction
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter, OpenApiExample
from rest_framework import filters, generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.serializers import BusinessSerializer
from analytics import services as analytics_services
from analytics.models import AnalyticsEvent
from reviews.models import Review
from subscriptions import services as billing
from subscriptions.models import Plan
from widgets import services as widget_services
from widgets.exceptions import WidgetLimitReached
from widgets.models import Widget
from widgets.snippet import INSTALL_INSTRUCTIONS, snippet_for_widget

from .permissions import IsBusinessMember, get_request_business
from .serializers import (
    AnalyticsEventSerializer,
    AnalyticsSummarySerializer,
    BulkDeleteSerializer,
    CheckoutSerializer,
    EmbedSerializer,
    PlanSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
    SubscriptionSerializer,
    WidgetSerializer,
)

logger = logging.getLogger("api")


def public_base_url(request):
    """Origin baked into snippets and Stripe redirect URLs"""
    if settings.DEBUG:
        scheme = "https" if request.is_secure() else "http"
        return f"{scheme}://{request.get_host()}"
    return settings.MAIN_APP_URL.rstrip("/")


class BusinessScopedMixin:
    """Scope querysets to the request's business"""

    permission_classes = [IsBusinessMember]
    model = None

    def get_business(self):
        return get_request_business(self.request)

    def get_queryset(self):
        return self.model.objects.for_business(self.get_business())


# =============================================================================
# BUSINESS
# =============================================================================


@extend_schema_view(
    get=extend_schema(tags=["business"], description="Your business profile"),
    put=extend_schema(tags=["business"], description="Replace your business profile"),
    patch=extend_schema(tags=["business"], description="Update your business profile"),
)
class BusinessView(generics.RetrieveUpdateAPIView):
    permission_classes = [IsBusinessMember]
    serializer_class = BusinessSerializer

    def get_object(self):
        business = get_request_business(self.request)
        self.check_object_permissions(self.request, business)
        return business


# =============================================================================
# WIDGET VIEWSET
# =============================================================================


@extend_schema_view(
    list=extend_schema(tags=["widgets"], description="List your widgets, newest first"),
    create=extend_schema(
        tags=["widgets"],
        description="Create a widget. A public widget code is generated. Respects your plan's widget limit.",
        examples=[
            OpenApiExample(
                name="create_widget_example",
                value={
                    "name": "Homepage widget",
                    "title": "How was your experience?",
                    "button_text": "Leave a Review",
                    "position": "bottom-right",
                    "show_after": 5000,
                    "colors": {"primary": "#007cba"},
                },
                request_only=True,
            )
        ],
    ),
    retrieve=extend_schema(
        tags=["widgets"],
        description="Get a widget by its public code",
        parameters=[
            OpenApiParameter(
                name="widget_code",
                type=str,
                location=OpenApiParameter.PATH,
                description="Public widget code (e.g., widget_k3j9x0q2m1a7b)",
            )
        ],
    ),
    update=extend_schema(tags=["widgets"], description="Update a widget"),
    partial_update=extend_schema(tags=["widgets"], description="Partially update a widget"),
    destroy=extend_schema(
        tags=["widgets"],
        description="Deactivate a widget. Widgets are never hard-deleted; their reviews keep pointing at them.",
    ),
)
class WidgetViewSet(BusinessScopedMixin, viewsets.ModelViewSet):
    model = Widget
    serializer_class = WidgetSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ["is_active", "theme", "position"]
    search_fields = ["name", "title", "widget_code"]
    ordering_fields = ["created_at", "name", "views", "clicks"]
    ordering = ["-created_at"]
    lookup_field = "widget_code"

    def perform_create(self, serializer):
        try:
            serializer.instance = widget_services.create_widget(
                self.get_business(), **serializer.validated_data
            )
        except WidgetLimitReached as e:
            raise PermissionDenied(str(e))

    def perform_update(self, serializer):
        widget = serializer.instance
        if not widget.is_active and serializer.validated_data.get('is_active'):
            try:
                widget_services.check_widget_limit(widget.business)
            except WidgetLimitReached as e:
                raise PermissionDenied(str(e))
        serializer.save()

    def perform_destroy(self, instance):
        """Soft delete by marking inactive"""
        widget_services.deactivate_widget(instance)

    @extend_schema(
        tags=["widgets"],
        responses=EmbedSerializer,
        description="Embed snippet for the widget plus install instructions",
    )
    @action(detail=True, methods=["get"])
    def embed(self, request, widget_code=None):
        widget = self.get_object()
        data = {
            "widget_code": widget.widget_code,
            "snippet": snippet_for_widget(widget, public_base_url(request)),
            "instructions": INSTALL_INSTRUCTIONS,
        }
        return Response(EmbedSerializer(data).data)


# =============================================================================
# REVIEW VIEWSET
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        tags=["reviews"],
        description="List reviews newest first. Filter by status, rating, source or widget.",
    ),
    create=extend_schema(tags=["reviews"], description="Add a review by hand (source=manual)"),
    retrieve=extend_schema(tags=["reviews"], description="Get a review by UUID"),
    update=extend_schema(tags=["reviews"], description="Update title, content, rating or status"),
    partial_update=extend_schema(tags=["reviews"], description="Partially update a review"),
    destroy=extend_schema(tags=["reviews"], description="Delete a review"),
)
class ReviewViewSet(BusinessScopedMixin, viewsets.ModelViewSet):
    model = Review
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = {
        "status": ["exact"],
        "rating": ["exact", "gte", "lte"],
        "source": ["exact"],
        "widget__widget_code": ["exact"],
    }
    search_fields = ["title", "content", "customer_name", "customer_email"]
    ordering_fields = ["created_at", "rating"]
    ordering = ["-created_at"]
    lookup_field = "uuid"

    def get_serializer_class(self):
        if self.action in ("update", "partial_update"):
            return ReviewUpdateSerializer
        return ReviewSerializer

    def get_queryset(self):
        return super().get_queryset().select_related("widget")

    @extend_schema(
        tags=["reviews"],
        description="Delete several reviews by UUID, or every review with {\"all\": true}",
        request=BulkDeleteSerializer,
        examples=[
            OpenApiExample(name="delete_some", value={"uuids": ["7a44880e-2f99-4593-b3a7-58109af8a468"]}),
            OpenApiExample(name="delete_all", value={"all": True}),
        ],
    )
    @action(detail=False, methods=["post"])
    def bulk_delete(self, request):
        serializer = BulkDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        targets = Review.objects.for_business(self.get_business())
        if not serializer.validated_data["all"]:
            targets = targets.filter(uuid__in=serializer.validated_data["uuids"])

        with transaction.atomic():
            deleted, _ = targets.delete()

        logger.info(f"Bulk deleted {deleted} reviews for business {self.get_business().pk}")
        return Response({"deleted": deleted})


# =============================================================================
# ANALYTICS VIEWSET
# =============================================================================


@extend_schema_view(
    list=extend_schema(tags=["analytics"], description="Analytics events, newest first"),
    retrieve=extend_schema(tags=["analytics"], description="A single analytics event"),
)
class AnalyticsViewSet(BusinessScopedMixin, viewsets.ReadOnlyModelViewSet):
    model = AnalyticsEvent
    serializer_class = AnalyticsEventSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ["event_type", "widget__widget_code"]
    ordering = ["-created_at"]

    def get_queryset(self):
        return super().get_queryset().select_related("widget")

    @extend_schema(
        tags=["analytics"],
        responses=AnalyticsSummarySerializer,
        description="Views, clicks, conversion rate and review stats over a window",
        parameters=[
            OpenApiParameter(
                name="range",
                type=str,
                location=OpenApiParameter.QUERY,
                enum=list(analytics_services.DATE_RANGES),
                description="Reporting window (default 30d)",
            )
        ],
    )
    @action(detail=False, methods=["get"])
    def summary(self, request):
        data = analytics_services.summarize(
            self.get_business(),
            request.query_params.get("range", analytics_services.DEFAULT_RANGE),
        )
        return Response(AnalyticsSummarySerializer(data).data)


# =============================================================================
# BILLING VIEWSET
# =============================================================================


class BillingViewSet(viewsets.ViewSet):
    """Plans, the current subscription, checkout and the billing portal"""

    permission_classes = [IsBusinessMember]

    @extend_schema(tags=["billing"], responses=PlanSerializer(many=True), description="Plans on sale")
    @action(detail=False, methods=["get"])
    def plans(self, request):
        plans = Plan.objects.filter(is_active=True)
        return Response(PlanSerializer(plans, many=True).data)

    @extend_schema(
        tags=["billing"],
        responses=SubscriptionSerializer,
        description="Current active or trialing subscription, or null",
    )
    @action(detail=False, methods=["get"])
    def subscription(self, request):
        subscription = billing.get_subscription(get_request_business(request))
        return Response(SubscriptionSerializer(subscription).data if subscription else None)

    @extend_schema(
        tags=["billing"],
        request=CheckoutSerializer,
        description="Start a Stripe Checkout session for a plan; redirect the browser to the returned url",
    )
    @action(detail=False, methods=["post"])
    def checkout(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            session = billing.create_subscription(
                get_request_business(request),
                serializer.validated_data["plan_type"],
                public_base_url(request),
            )
        except billing.BillingError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except stripe.StripeError:
            logger.exception("Stripe checkout session creation failed")
            return Response({"error": "Payment provider error"}, status=status.HTTP_502_BAD_GATEWAY)
        return Response(session, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["billing"], request=None, description="Stripe billing portal URL for the current subscription")
    @action(detail=False, methods=["post"])
    def portal(self, request):
        try:
            url = billing.create_billing_portal_session(
                get_request_business(request),
                return_url=f"{public_base_url(request)}/billing/",
            )
        except billing.BillingError as e:
            return Response({"error": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except stripe.StripeError:
            logger.exception("Stripe billing portal session creation failed")
            return Response({"error": "Payment provider error"}, status=status.HTTP_502_BAD_GATEWAY)
        return Response({"url": url})

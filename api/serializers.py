"""
DRF Serializers for the Smart Review dashboard API.

Tenant-owned objects never take a business from the payload; it is always
set from the request.
"""
from rest_framework import serializers
from analytics.models import AnalyticsEvent
from analytics.services import DATE_RANGES
from reviews.models import Review
from subscriptions.models import Plan, Subscription
from widgets.config import DEFAULT_COLORS, clean_color
from widgets.models import Widget
from .permissions import get_request_business


# =============================================================================
# WIDGET SERIALIZERS
# =============================================================================


class WidgetSerializer(serializers.ModelSerializer):
    """
    Full serializer for Widget.
    widget_code and the counters are server-managed.
    """

    conversion_rate = serializers.FloatField(read_only=True)

    class Meta:
        model = Widget
        fields = [
            "widget_code",
            "name",
            "title",
            "subtitle",
            "button_text",
            "theme",
            "position",
            "show_after",
            "colors",
            "is_active",
            "views",
            "clicks",
            "conversion_rate",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["widget_code", "views", "clicks", "created_at", "updated_at"]

    def validate_colors(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Colors must be an object.")

        unknown = set(value) - set(DEFAULT_COLORS)
        if unknown:
            raise serializers.ValidationError(f"Unknown colour keys: {', '.join(sorted(unknown))}")

        for key, color in value.items():
            if clean_color(color) is None:
                raise serializers.ValidationError({key: "Enter a hex (#rrggbb) or rgb()/rgba() colour."})

        current = self.instance.colors if self.instance is not None and self.instance.colors else {}
        return {**DEFAULT_COLORS, **current, **value}


class EmbedSerializer(serializers.Serializer):
    widget_code = serializers.CharField()
    snippet = serializers.CharField()
    instructions = serializers.ListField(child=serializers.CharField())


# =============================================================================
# REVIEW SERIALIZERS
# =============================================================================


class ReviewSerializer(serializers.ModelSerializer):
    """
    Reviews collected by widgets or entered manually.
    Manual reviews are always tagged source="manual".
    """

    widget = serializers.SlugRelatedField(
        slug_field="widget_code",
        queryset=Widget.objects.all(),
        required=False,
        allow_null=True,
    )

    class Meta:
        model = Review
        fields = [
            "uuid",
            "widget",
            "title",
            "content",
            "rating",
            "customer_name",
            "customer_email",
            "status",
            "source",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["uuid", "source", "created_at", "updated_at"]

    def validate_widget(self, value):
        if value is None:
            return value
        business = get_request_business(self.context["request"])
        if value.business_id != business.pk:
            raise serializers.ValidationError("Widget not found.")
        return value

    def create(self, validated_data):
        validated_data["business"] = get_request_business(self.context["request"])
        validated_data["source"] = "manual"
        validated_data.setdefault("ip_address", "unknown")
        validated_data.setdefault("user_agent", "unknown")
        return super().create(validated_data)


class ReviewUpdateSerializer(ReviewSerializer):
    """Owners may edit text, rating and status but not re-home a review"""

    widget = serializers.SlugRelatedField(slug_field="widget_code", read_only=True)

    class Meta(ReviewSerializer.Meta):
        read_only_fields = ReviewSerializer.Meta.read_only_fields + ["customer_name", "customer_email"]


# =============================================================================
# ANALYTICS SERIALIZERS
# =============================================================================


class AnalyticsEventSerializer(serializers.ModelSerializer):
    widget = serializers.SlugRelatedField(slug_field="widget_code", read_only=True)

    class Meta:
        model = AnalyticsEvent
        fields = ["id", "widget", "event_type", "event_data", "views", "clicks", "conversions", "created_at"]
        read_only_fields = fields


class AnalyticsSummarySerializer(serializers.Serializer):
    range = serializers.ChoiceField(choices=list(DATE_RANGES))
    since = serializers.DateTimeField()
    views = serializers.IntegerField()
    clicks = serializers.IntegerField()
    conversions = serializers.IntegerField()
    conversion_rate = serializers.FloatField()
    review_count = serializers.IntegerField()
    average_rating = serializers.FloatField(allow_null=True)
    events = serializers.DictField(child=serializers.IntegerField())


# =============================================================================
# BILLING SERIALIZERS
# =============================================================================


class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = ["plan_type", "name", "price_monthly", "max_widgets", "features"]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):
    plan = PlanSerializer(read_only=True)
    is_active = serializers.BooleanField(read_only=True)

    class Meta:
        model = Subscription
        fields = [
            "id",
            "plan",
            "status",
            "is_active",
            "current_period_start",
            "current_period_end",
            "cancel_at_period_end",
            "trial_end",
            "created_at",
        ]
        read_only_fields = fields


class CheckoutSerializer(serializers.Serializer):
    plan_type = serializers.ChoiceField(choices=Plan.PLAN_TYPES)


class BulkDeleteSerializer(serializers.Serializer):
    uuids = serializers.ListField(child=serializers.UUIDField(), required=False, allow_empty=False)
    all = serializers.BooleanField(required=False, default=False)

    def validate(self, data):
        if not data.get("all") and not data.get("uuids"):
            raise serializers.ValidationError("Provide a non-empty uuids list or all=true.")
        return data

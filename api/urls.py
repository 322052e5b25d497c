"""
API URL configuration.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)

from .viewsets import (
    AnalyticsViewSet,
    BillingViewSet,
    BusinessView,
    ReviewViewSet,
    WidgetViewSet,
)

# Create router for viewsets
router = DefaultRouter()
router.register(r"widgets", WidgetViewSet, basename="widget")
router.register(r"reviews", ReviewViewSet, basename="review")
router.register(r"analytics", AnalyticsViewSet, basename="analytics")
router.register(r"billing", BillingViewSet, basename="billing")

app_name = "api"

urlpatterns = [
    # API endpoints
    path("", include(router.urls)),
    path("business/", BusinessView.as_view(), name="business"),
    # OpenAPI schema
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # API documentation UIs
    path(
        "docs/",
        SpectacularSwaggerView.as_view(url_name="api:schema"),
        name="swagger-ui",
    ),
    path("redoc/", SpectacularRedocView.as_view(url_name="api:schema"), name="redoc"),
]

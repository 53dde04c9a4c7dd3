"""URL routing for property calendars and pricing."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import (
    BlockDatesView,
    PriceQuoteView,
    PricingRuleViewSet,
    PropertyAvailabilityView,
    ReleaseDatesView,
)

pricing_rule_list = PricingRuleViewSet.as_view({"get": "list", "post": "create"})
pricing_rule_detail = PricingRuleViewSet.as_view(
    {"get": "retrieve", "put": "update", "patch": "partial_update", "delete": "destroy"}
)

urlpatterns = [
    path(
        "<int:property_id>/availability/",
        PropertyAvailabilityView.as_view(),
        name="property-availability",
    ),
    path(
        "<int:property_id>/price-quote/",
        PriceQuoteView.as_view(),
        name="property-price-quote",
    ),
    # Pricing rules
    path(
        "<int:property_id>/pricing-rules/",
        pricing_rule_list,
        name="property-pricing-rule-list",
    ),
    path(
        "<int:property_id>/pricing-rules/<int:pk>/",
        pricing_rule_detail,
        name="property-pricing-rule-detail",
    ),
    # Manual blocks
    path(
        "<int:property_id>/blocks/",
        BlockDatesView.as_view(),
        name="property-blocks",
    ),
    path(
        "<int:property_id>/blocks/release/",
        ReleaseDatesView.as_view(),
        name="property-blocks-release",
    ),
]

"""URL routing for payment gateway callbacks."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import PaymentCallbackView

urlpatterns = [
    path("callback/", PaymentCallbackView.as_view(), name="payment-callback"),
]

from django.urls import path
from . import views

app_name = 'subscriptions'

urlpatterns = [
    path('stripe/webhook/', views.stripe_webhook, name='stripe_webhook'),
    path('stripe/checkout-success/', views.checkout_success, name='checkout_success'),
]

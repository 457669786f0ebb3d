from django.urls import path
from . import views

urlpatterns = [
    path('intent/', views.create_payment_intent, name='create-payment-intent'),
    path('webhook/', views.stripe_webhook, name='stripe-webhook'),
]

"""Pytest fixtures for the storefront backend."""
import hashlib
import hmac
import itertools
import json
import time
from decimal import Decimal

import pytest

from cart.models import Cart, CartItem
from orders.models import Address, Order, OrderItem
from orders.pricing import calculate_totals
from products.models import Product

WEBHOOK_SECRET = "whsec_test_secret"

_order_numbers = itertools.count(1)


@pytest.fixture(autouse=True)
def store_settings(settings):
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    settings.STRIPE_CURRENCY = "usd"
    settings.STRIPE_MINIMUM_CHARGE = 50
    settings.CHECKOUT_PRICE_TOLERANCE = Decimal("0.01")
    settings.DEFAULT_FROM_EMAIL = "orders@example.com"
    settings.ORDERS_NOTIFICATION_EMAIL = "ops@example.com"
    settings.FRONTEND_URL = "https://shop.example.com"
    return settings


@pytest.fixture
def user(db, django_user_model):
    return django_user_model.objects.create_user(
        username="alice", email="alice@example.com", password="secret-pass", first_name="Alice"
    )


@pytest.fixture
def other_user(db, django_user_model):
    return django_user_model.objects.create_user(
        username="bob", email="bob@example.com", password="secret-pass"
    )


@pytest.fixture
def staff_user(db, django_user_model):
    return django_user_model.objects.create_user(
        username="admin", email="admin@example.com", password="secret-pass", is_staff=True
    )


@pytest.fixture
def auth_client(client, user):
    client.force_login(user)
    return client


@pytest.fixture
def staff_client(client, staff_user):
    client.force_login(staff_user)
    return client


@pytest.fixture
def dress(db):
    return Product.objects.create(name="Silk Dress", slug="silk-dress", price=Decimal("50.00"), stock=10)


@pytest.fixture
def scarf(db):
    return Product.objects.create(name="Wool Scarf", slug="wool-scarf", price=Decimal("20.00"), stock=2)


@pytest.fixture
def address(user):
    return Address.objects.create(
        user=user,
        full_name="Alice Example",
        line1="1 Main St",
        city="Springfield",
        state="IL",
        postal_code="62701",
        country="US",
    )


@pytest.fixture
def cart(user):
    return Cart.objects.create(user=user)


@pytest.fixture
def add_to_cart(cart):
    def _add(product, quantity, size=None, color=None):
        return CartItem.objects.create(cart=cart, product=product, quantity=quantity, size=size, color=color)
    return _add


@pytest.fixture
def make_order(user):
    """
    Build an order directly, bypassing stock checks. `lines` is a list of
    (product, quantity, price) tuples.
    """
    def _make(lines=(), owner=None, status=Order.Status.PENDING,
              payment_status=Order.PaymentStatus.PENDING, total=None, payment_intent_id=None):
        totals = calculate_totals([(price, quantity) for _, quantity, price in lines])
        order = Order.objects.create(
            order_number=f"ORD-TEST-{next(_order_numbers)}",
            user=owner or user,
            status=status,
            payment_status=payment_status,
            payment_method="STRIPE",
            payment_intent_id=payment_intent_id,
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping=totals.shipping,
            discount=totals.discount,
            total=totals.total if total is None else total,
        )
        for product, quantity, price in lines:
            OrderItem.objects.create(order=order, product=product, quantity=quantity, price=price)
        return order
    return _make


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_type, order_id, event_id="evt_1", intent_id="pi_123"):
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": intent_id,
                "object": "payment_intent",
                "metadata": {"orderId": str(order_id) if order_id else None},
            }
        },
    })

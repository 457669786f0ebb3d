"""Tests for payment intent creation and client-side payment confirmation."""
from decimal import Decimal
from unittest import mock

import pytest
import stripe
from django.core.exceptions import ImproperlyConfigured

from orders.exceptions import (
    InvalidOrderState,
    OrderNotFound,
    OrderValidationError,
    PaymentGatewayError,
)
from orders.models import Order
from payments import services
from payments.gateway import StripeService


@pytest.fixture
def gateway():
    fake = mock.Mock(spec=StripeService)
    fake.create_payment_intent.return_value = mock.Mock(id="pi_123", client_secret="pi_123_secret_abc")
    return fake


@pytest.mark.django_db
class TestCreatePaymentIntent:

    def test_charges_order_total_in_minor_units(self, user, dress, make_order, gateway):
        order = make_order([(dress, 3, Decimal("50.00"))])

        result = services.create_payment_intent(user, order.id, gateway=gateway)

        assert result == {"clientSecret": "pi_123_secret_abc", "paymentIntentId": "pi_123"}
        kwargs = gateway.create_payment_intent.call_args.kwargs
        assert kwargs["amount"] == 16200
        assert kwargs["metadata"]["orderId"] == str(order.id)
        assert kwargs["metadata"]["orderNumber"] == order.order_number
        assert kwargs["metadata"]["userId"] == str(user.pk)
        order.refresh_from_db()
        assert order.payment_intent_id == "pi_123"
        assert order.payment_status == Order.PaymentStatus.PENDING

    def test_keeps_the_first_intent_id(self, user, dress, make_order, gateway):
        order = make_order([(dress, 3, Decimal("50.00"))], payment_intent_id="pi_first")

        result = services.create_payment_intent(user, order.id, gateway=gateway)

        assert result["paymentIntentId"] == "pi_123"
        order.refresh_from_db()
        assert order.payment_intent_id == "pi_first"

    def test_amount_below_gateway_minimum_is_rejected(self, user, make_order, gateway):
        order = make_order(total=Decimal("0.30"))

        with pytest.raises(OrderValidationError) as excinfo:
            services.create_payment_intent(user, order.id, gateway=gateway)

        assert excinfo.value.payload == {"amount": 30, "minimumAmount": 50}
        gateway.create_payment_intent.assert_not_called()

    def test_zero_total_is_rejected(self, user, make_order, gateway):
        order = make_order(total=Decimal("0.00"))

        with pytest.raises(OrderValidationError, match="Invalid order amount"):
            services.create_payment_intent(user, order.id, gateway=gateway)

        gateway.create_payment_intent.assert_not_called()

    def test_paid_order_is_rejected(self, user, dress, make_order, gateway):
        order = make_order([(dress, 1, dress.price)], status=Order.Status.CONFIRMED,
                           payment_status=Order.PaymentStatus.PAID)

        with pytest.raises(InvalidOrderState, match="already paid"):
            services.create_payment_intent(user, order.id, gateway=gateway)

        gateway.create_payment_intent.assert_not_called()

    @pytest.mark.parametrize("status, payment_status", [
        (Order.Status.CANCELLED, Order.PaymentStatus.REFUNDED),
        (Order.Status.REFUNDED, Order.PaymentStatus.REFUNDED),
        (Order.Status.DELIVERED, Order.PaymentStatus.PENDING),
    ])
    def test_closed_order_is_rejected(self, user, dress, make_order, gateway, status, payment_status):
        order = make_order([(dress, 3, Decimal("50.00"))], status=status, payment_status=payment_status)

        with pytest.raises(InvalidOrderState, match="cannot be paid"):
            services.create_payment_intent(user, order.id, gateway=gateway)

        gateway.create_payment_intent.assert_not_called()
        order.refresh_from_db()
        assert order.payment_intent_id is None

    def test_other_users_order_is_not_found(self, other_user, dress, make_order, gateway):
        order = make_order([(dress, 1, dress.price)])

        with pytest.raises(OrderNotFound):
            services.create_payment_intent(other_user, order.id, gateway=gateway)

    @pytest.mark.parametrize("order_id", [None, ""])
    def test_order_id_is_required(self, user, gateway, order_id):
        with pytest.raises(OrderValidationError, match="Order ID is required"):
            services.create_payment_intent(user, order_id, gateway=gateway)

    def test_gateway_failure_leaves_order_untouched(self, user, dress, make_order, gateway):
        order = make_order([(dress, 3, Decimal("50.00"))])
        gateway.create_payment_intent.side_effect = stripe.APIConnectionError("Network down")

        with pytest.raises(PaymentGatewayError) as excinfo:
            services.create_payment_intent(user, order.id, gateway=gateway)

        assert excinfo.value.status_code == 502
        assert "Network down" in excinfo.value.payload["error"]
        order.refresh_from_db()
        assert order.payment_intent_id is None
        assert order.payment_status == Order.PaymentStatus.PENDING


@pytest.mark.django_db
class TestConfirmOrderPayment:

    def test_marks_pending_order_paid_once(self, user, dress, make_order):
        order = make_order([(dress, 1, dress.price)])
        notifier = mock.Mock()

        confirmed, changed = services.confirm_order_payment(user, order.id, notifier=notifier)
        again, changed_again = services.confirm_order_payment(user, order.id, notifier=notifier)

        assert changed is True
        assert changed_again is False
        assert confirmed.status == Order.Status.CONFIRMED
        assert again.payment_status == Order.PaymentStatus.PAID
        notifier.assert_called_once()

    def test_notifier_failure_does_not_undo_payment(self, user, dress, make_order):
        order = make_order([(dress, 1, dress.price)])
        notifier = mock.Mock(side_effect=RuntimeError("SMTP down"))

        _, changed = services.confirm_order_payment(user, order.id, notifier=notifier)

        assert changed is True
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.PAID

    def test_cancelled_order_cannot_be_confirmed(self, user, dress, make_order):
        order = make_order([(dress, 1, dress.price)], status=Order.Status.CANCELLED,
                           payment_status=Order.PaymentStatus.REFUNDED)
        notifier = mock.Mock()

        with pytest.raises(InvalidOrderState):
            services.confirm_order_payment(user, order.id, notifier=notifier)

        order.refresh_from_db()
        assert order.status == Order.Status.CANCELLED
        notifier.assert_not_called()

    def test_other_users_order_is_not_found(self, other_user, make_order):
        order = make_order()

        with pytest.raises(OrderNotFound):
            services.confirm_order_payment(other_user, order.id, notifier=mock.Mock())


def test_gateway_requires_configuration(settings):
    settings.STRIPE_SECRET_KEY = ""

    with pytest.raises(ImproperlyConfigured):
        StripeService()


def test_gateway_passes_key_and_currency_to_stripe():
    service = StripeService()

    with mock.patch("payments.gateway.stripe.PaymentIntent.create") as create:
        service.create_payment_intent(amount=16200, metadata={"orderId": "abc"}, description="Order ORD-1")

    kwargs = create.call_args.kwargs
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["currency"] == "usd"
    assert kwargs["amount"] == 16200
    assert kwargs["automatic_payment_methods"] == {"enabled": True}

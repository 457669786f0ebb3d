"""
Payment reconciliation: opens payment intents for orders and moves orders
through their payment states on gateway events and client confirmations.

Succeeded transitions are idempotent. An order that is already PAID is never
touched again, and gateway event ids that were already applied are skipped
before any state is read.
"""
import logging

import stripe
from django.conf import settings
from django.db import transaction

from orders.exceptions import (
    InvalidOrderState,
    OrderNotFound,
    OrderValidationError,
    PaymentGatewayError,
    WebhookOrderNotFound,
    WebhookSignatureError,
)
from orders.models import Order
from orders.notifications import send_order_confirmation
from orders.pricing import to_minor_units
from orders.services import find_one
from .gateway import StripeService
from .models import ProcessedWebhookEvent

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = 'payment_intent.succeeded'
PAYMENT_FAILED = 'payment_intent.payment_failed'


def _notify(notifier, order):
    # Notifications run after the payment state is committed and must never
    # turn a recorded payment into a failed request.
    try:
        notifier(order)
    except Exception as e:
        logger.error(f"Notification dispatch failed for order {order.order_number}: {e}")


def create_payment_intent(user, order_id, gateway=None):
    """
    Open a Stripe payment intent for one of the user's orders.

    The intent id is stored on the order only after Stripe answers, so a
    gateway failure leaves the order exactly as it was.
    """
    if not order_id:
        raise OrderValidationError("Order ID is required")

    order = find_one(Order.objects, pk=order_id, user=user)
    if order is None:
        raise OrderNotFound()

    if order.total is None or order.total <= 0:
        raise OrderValidationError("Invalid order amount")

    amount = to_minor_units(order.total)
    if amount < settings.STRIPE_MINIMUM_CHARGE:
        raise OrderValidationError(
            f"Order amount is below the minimum chargeable amount of {settings.STRIPE_MINIMUM_CHARGE} minor units",
            {'amount': amount, 'minimumAmount': settings.STRIPE_MINIMUM_CHARGE},
        )

    if order.is_paid:
        raise InvalidOrderState("Order already paid")

    if order.status in Order.TERMINAL_STATUSES:
        raise InvalidOrderState(f"Order cannot be paid in status {order.status}")

    gateway = gateway or StripeService()
    try:
        intent = gateway.create_payment_intent(
            amount=amount,
            metadata={
                'orderId': str(order.id),
                'orderNumber': order.order_number,
                'userId': str(user.pk),
            },
            description=f"Order {order.order_number}",
        )
    except stripe.StripeError as e:
        raise PaymentGatewayError(
            "Error creating payment intent",
            {'error': e.user_message or str(e)},
        ) from e

    if not order.payment_intent_id:
        Order.objects.filter(pk=order.pk).update(payment_intent_id=intent.id)
    elif order.payment_intent_id != intent.id:
        # Keep the first intent id for the audit trail.
        logger.warning(
            f"Order {order.order_number} already has payment intent {order.payment_intent_id}; "
            f"new intent {intent.id} is resolved through its metadata."
        )

    logger.info(f"Payment intent {intent.id} created for order {order.order_number} ({amount} minor units).")
    return {
        'clientSecret': intent.client_secret,
        'paymentIntentId': intent.id,
    }


def _already_processed(event_id):
    return bool(event_id) and ProcessedWebhookEvent.objects.filter(event_id=event_id).exists()


def _record_event(event_id, event_type, order):
    if event_id:
        ProcessedWebhookEvent.objects.create(event_id=event_id, event_type=event_type, order=order)


def _resolve_order_id(intent):
    metadata = intent.get('metadata') or {}
    return metadata.get('orderId')


def _apply_payment_succeeded(event_id, intent):
    """
    Apply a succeeded payment. Returns the order when it newly became PAID,
    None when nothing changed.
    """
    order_id = _resolve_order_id(intent)
    with transaction.atomic():
        order = find_one(Order.objects.select_for_update(), pk=order_id) if order_id else None
        if order is None:
            logger.error(f"Payment succeeded for intent {intent.get('id')} but order {order_id!r} does not exist.")
            raise WebhookOrderNotFound(f"Order not found for payment intent {intent.get('id')}")

        if _already_processed(event_id):
            logger.info(f"Event {event_id} already processed; skipping.")
            return None

        if order.is_paid:
            logger.info(f"Order {order.order_number} is already PAID; ignoring duplicate success.")
            _record_event(event_id, PAYMENT_SUCCEEDED, order)
            return None

        if order.status in Order.TERMINAL_STATUSES:
            logger.critical(
                f"CRITICAL: Payment {intent.get('id')} succeeded for order {order.order_number} "
                f"in terminal status {order.status}. Manual refund required."
            )
            _record_event(event_id, PAYMENT_SUCCEEDED, order)
            return None

        order.mark_paid(payment_intent_id=intent.get('id'), payment_method='STRIPE')
        _record_event(event_id, PAYMENT_SUCCEEDED, order)

    logger.info(f"Order {order.order_number} confirmed and marked PAID.")
    return order


def _apply_payment_failed(event_id, intent):
    # Stock is kept: the customer is expected to retry the payment.
    order_id = _resolve_order_id(intent)
    with transaction.atomic():
        order = find_one(Order.objects.select_for_update(), pk=order_id) if order_id else None
        if order is None:
            logger.error(f"Payment failed for intent {intent.get('id')} but order {order_id!r} does not exist.")
            raise WebhookOrderNotFound(f"Order not found for payment intent {intent.get('id')}")

        if _already_processed(event_id):
            logger.info(f"Event {event_id} already processed; skipping.")
            return None

        if order.is_paid or order.status in Order.TERMINAL_STATUSES:
            logger.warning(
                f"Ignoring payment failure for order {order.order_number} "
                f"(status={order.status}, payment_status={order.payment_status})."
            )
        else:
            order.mark_payment_failed()
            logger.info(f"Order {order.order_number} marked as payment FAILED.")
        _record_event(event_id, PAYMENT_FAILED, order)

    return order


def handle_webhook(raw_body, signature_header, gateway=None, notifier=send_order_confirmation):
    """
    Verify and apply one Stripe webhook delivery.

    Unverified payloads are rejected before any state is read. Recognised
    events whose order cannot be resolved raise WebhookOrderNotFound; other
    event types are acknowledged without action.
    """
    gateway = gateway or StripeService()
    try:
        event = gateway.parse_webhook_event(raw_body, signature_header)
    except stripe.SignatureVerificationError as e:
        logger.error(f"Webhook verification failed: {e}")
        raise WebhookSignatureError(f"Webhook Error: {e}") from e
    except ValueError as e:
        logger.error(f"Webhook payload rejected: {e}")
        raise WebhookSignatureError(f"Webhook Error: {e}") from e

    event_id = event.get('id')
    event_type = event['type']
    intent = (event.get('data') or {}).get('object') or {}
    logger.info(f"Webhook verified: {event_type} ({event_id})")

    if event_type == PAYMENT_SUCCEEDED:
        order = _apply_payment_succeeded(event_id, intent)
        if order is not None:
            _notify(notifier, order)
    elif event_type == PAYMENT_FAILED:
        _apply_payment_failed(event_id, intent)
    else:
        logger.info(f"Unhandled event: {event_type}")

    return {'received': True}


def confirm_order_payment(user, order_id, notifier=send_order_confirmation):
    """
    Client-side fallback for a delayed webhook. Returns `(order, changed)`;
    an order that is already PAID is returned unchanged.
    """
    with transaction.atomic():
        order = find_one(Order.objects.select_for_update(), pk=order_id, user=user)
        if order is None:
            raise OrderNotFound()

        if order.is_paid:
            return order, False

        if order.status != Order.Status.PENDING:
            raise InvalidOrderState("This order status cannot be updated.")

        order.mark_paid()

    logger.info(f"Payment for order {order.order_number} confirmed by user {user.pk}.")
    _notify(notifier, order)
    return order, True

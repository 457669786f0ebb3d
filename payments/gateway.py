import json
import logging

import stripe
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)


class StripeService:
    """
    A service class for interacting with the Stripe API.
    """
    def __init__(self, api_key=None, webhook_secret=None, currency=None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.currency = currency or settings.STRIPE_CURRENCY

        # Log presence only, never the keys themselves
        logger.debug("--- Initializing StripeService ---")
        logger.debug(f"STRIPE_SECRET_KEY status: {'Loaded' if self.api_key else 'NOT Loaded'}")
        logger.debug(f"STRIPE_WEBHOOK_SECRET status: {'Loaded' if self.webhook_secret else 'NOT Loaded'}")

        if not all([self.api_key, self.webhook_secret, self.currency]):
            raise ImproperlyConfigured("Stripe settings are not configured properly.")

    def create_payment_intent(self, amount, metadata, description):
        """
        Open a payment intent for `amount` minor currency units.

        Returns the Stripe PaymentIntent; Stripe errors are logged and re-raised.
        """
        logger.info(f"Creating Stripe payment intent: amount={amount} {self.currency}, metadata={metadata}")
        try:
            return stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount,
                currency=self.currency,
                metadata=metadata,
                description=description,
                automatic_payment_methods={'enabled': True},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe API Error: {e.http_status} - {e.user_message or e}")
            raise

    def parse_webhook_event(self, payload, sig_header):
        """
        Verify a webhook delivery against the endpoint secret and decode it.

        Raises stripe.SignatureVerificationError when the signature does not
        match and ValueError when the payload is not a JSON event.
        """
        if not sig_header:
            raise stripe.SignatureVerificationError("Missing Stripe-Signature header", sig_header, payload)
        if isinstance(payload, bytes):
            try:
                payload = payload.decode('utf-8')
            except UnicodeDecodeError:
                raise ValueError("Webhook payload is not valid UTF-8")

        stripe.WebhookSignature.verify_header(
            payload, sig_header, self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
        )

        event = json.loads(payload)
        if not isinstance(event, dict) or 'type' not in event:
            raise ValueError("Webhook payload is not a Stripe event")
        return event

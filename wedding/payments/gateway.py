import logging
from collections import namedtuple
from decimal import Decimal

import stripe
from flask import current_app

from wedding.errors import PaymentProviderError, ValidationError

logger = logging.getLogger(__name__)

PaymentIntent = namedtuple('PaymentIntent', ['id', 'client_secret'])


def to_minor_units(amount):
    return int((Decimal(amount) * 100).to_integral_value())


class PaymentGateway:
    """Thin wrapper over the Stripe API.

    Creates payment intents for contributions and verifies webhook
    payloads. Provider failures surface as ``PaymentProviderError``.
    """

    def __init__(self, app=None):
        self.api_key = None
        self.webhook_secret = None
        self.currency = 'usd'
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.api_key = app.config.get('STRIPE_SECRET_KEY')
        self.webhook_secret = app.config.get('STRIPE_WEBHOOK_SECRET')
        self.currency = app.config.get('PAYMENT_CURRENCY', 'usd')
        app.extensions['payments'] = self

    def create_payment_intent(self, amount, metadata=None, idempotency_key=None):
        if not self.api_key:
            raise PaymentProviderError("Payment provider is not configured")
        params = {
            'amount': to_minor_units(amount),
            'currency': self.currency,
            'metadata': metadata or {},
            'api_key': self.api_key,
        }
        if idempotency_key:
            params['idempotency_key'] = idempotency_key
        try:
            intent = stripe.PaymentIntent.create(**params)
        except stripe.StripeError as e:
            logger.error("Payment intent creation failed: %s", e)
            raise PaymentProviderError("Error creating payment intent") from e
        return PaymentIntent(id=intent['id'], client_secret=intent['client_secret'])

    def retrieve_payment_intent(self, payment_intent_id):
        if not self.api_key:
            raise PaymentProviderError("Payment provider is not configured")
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error("Payment intent %s lookup failed: %s", payment_intent_id, e)
            raise PaymentProviderError("Error retrieving payment intent") from e
        return PaymentIntent(id=intent['id'], client_secret=intent['client_secret'])

    def construct_event(self, payload, signature):
        """Verify a webhook body and return it as an event mapping."""
        if not signature:
            raise ValidationError("Missing stripe-signature header")
        if not self.webhook_secret:
            raise PaymentProviderError("Payment webhook secret is not configured")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("Rejected webhook payload: %s", e)
            raise ValidationError(f"Webhook Error: {e}") from e


def get_gateway():
    return current_app.extensions['payments']

# app/services/stripe_gateway.py
from typing import Any, Dict, Optional

import stripe

from app.domain.errors import GatewayError, PaymentNotFoundError
from app.services.payment_gateway import Authorization, GatewayEvent, Payer, PaymentGateway
from app.utils.retry import gateway_retry
from app.utils.settings import PAYMENT_CURRENCY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _to_authorization(intent) -> Authorization:
    return Authorization(
        id=intent.id,
        client_secret=getattr(intent, "client_secret", None),
        currency=intent.currency,
        status=intent.status,
        amount=intent.amount,
        customer_id=getattr(intent, "customer", None),
    )


def _translate(e: stripe.StripeError, authorization_id: Optional[str] = None) -> GatewayError:
    if isinstance(e, stripe.InvalidRequestError) and e.code == "resource_missing":
        return PaymentNotFoundError(f"No such authorization: {authorization_id}")
    return GatewayError(e.user_message or str(e))


class StripePaymentGateway(PaymentGateway):
    """
    Card payments through Stripe PaymentIntents.
    -customer created on first use, its id is returned on the Authorization
    -connection errors retried with tenacity, everything else surfaces as GatewayError
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        currency: str = PAYMENT_CURRENCY,
    ):
        self.api_key = api_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else STRIPE_WEBHOOK_SECRET
        self.currency = currency

    @gateway_retry()
    def _ensure_customer(self, payer: Payer) -> str:
        if payer.customer_id:
            return payer.customer_id
        customer = stripe.Customer.create(
            api_key=self.api_key,
            email=payer.email,
            name=payer.name,
            metadata={"user_id": payer.user_id},
        )
        logger.info(f"Created Stripe customer {customer.id} for user {payer.user_id}")
        return customer.id

    @gateway_retry()
    def _create_intent(self, customer_id: str, amount_minor: int, metadata: Dict[str, Any]):
        return stripe.PaymentIntent.create(
            api_key=self.api_key,
            amount=amount_minor,
            currency=self.currency,
            customer=customer_id,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
        )

    def create_authorization(self, payer, amount_minor, metadata):
        try:
            customer_id = self._ensure_customer(payer)
            intent = self._create_intent(customer_id, amount_minor, metadata)
        except stripe.StripeError as e:
            logger.error(f"Stripe refused authorization for user {payer.user_id}: {e}")
            raise _translate(e) from e

        logger.info(f"Created PaymentIntent {intent.id} for {amount_minor} {self.currency}")
        return _to_authorization(intent)

    @gateway_retry()
    def _retrieve(self, authorization_id: str):
        return stripe.PaymentIntent.retrieve(authorization_id, api_key=self.api_key)

    def retrieve_authorization(self, authorization_id):
        try:
            return _to_authorization(self._retrieve(authorization_id))
        except stripe.StripeError as e:
            raise _translate(e, authorization_id) from e

    def confirm_authorization(self, authorization_id):
        try:
            intent = stripe.PaymentIntent.confirm(authorization_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise _translate(e, authorization_id) from e
        return _to_authorization(intent)

    def cancel_authorization(self, authorization_id):
        try:
            intent = stripe.PaymentIntent.cancel(authorization_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise _translate(e, authorization_id) from e
        return _to_authorization(intent)

    def parse_event(self, payload, signature):
        if not self.webhook_secret:
            raise GatewayError("Webhook secret is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature or "", self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise GatewayError("Invalid webhook signature") from e
        except ValueError as e:
            raise GatewayError(f"Malformed event payload: {e}") from e

        obj = event.data.object
        return GatewayEvent(type=event.type, authorization_id=obj.id, status=getattr(obj, "status", None))

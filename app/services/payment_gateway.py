"""Payment gateway port: the contract checkout and the order lifecycle program against.

Adapters are picked through configuration (PAYMENT_GATEWAY). The Stripe
adapter lives in stripe_gateway.py; FakePaymentGateway is deterministic and
used for local development and tests.
"""

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from app.domain.enums import PaymentStatus
from app.domain.errors import GatewayError, PaymentNotFoundError
from app.utils.settings import PAYMENT_CURRENCY

_CENT = Decimal("0.01")
_MINOR_PER_MAJOR = Decimal(100)

# processor-side authorization status -> our payment status
_STATUS_MAP = {
    "succeeded": PaymentStatus.PAID,
    "processing": PaymentStatus.PROCESSING,
    "requires_action": PaymentStatus.REQUIRES_ACTION,
    "requires_confirmation": PaymentStatus.REQUIRES_ACTION,
    "requires_capture": PaymentStatus.PROCESSING,
    "requires_payment_method": PaymentStatus.UNPAID,  # initial state, and after a decline
    "canceled": PaymentStatus.FAILED,
}

# callback event type -> our payment status
_EVENT_MAP = {
    "payment_intent.succeeded": PaymentStatus.PAID,
    "payment_intent.processing": PaymentStatus.PROCESSING,
    "payment_intent.requires_action": PaymentStatus.REQUIRES_ACTION,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "payment_intent.canceled": PaymentStatus.FAILED,
}


@dataclass(frozen=True)
class Payer:
    user_id: int
    email: str
    name: str
    customer_id: Optional[str] = None


@dataclass(frozen=True)
class Authorization:
    id: str
    client_secret: Optional[str]
    currency: str
    status: str
    amount: int
    customer_id: Optional[str] = None

    @property
    def payment_status(self) -> PaymentStatus:
        return payment_status_for(self.status)


@dataclass(frozen=True)
class GatewayEvent:
    type: str
    authorization_id: str
    status: Optional[str] = None

    @property
    def payment_status(self) -> Optional[PaymentStatus]:
        return _EVENT_MAP.get(self.type)


def payment_status_for(gateway_status: str) -> PaymentStatus:
    return _STATUS_MAP.get(gateway_status, PaymentStatus.PROCESSING)


def to_minor_units(amount) -> int:
    """19.99 -> 1999, half-up on the third decimal."""
    value = Decimal(str(amount)) * _MINOR_PER_MAJOR
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_decimal(amount_minor: int) -> Decimal:
    """1999 -> Decimal('19.99')."""
    return (Decimal(int(amount_minor)) / _MINOR_PER_MAJOR).quantize(_CENT)


class PaymentGateway(ABC):
    """Abstract interface for card-payment processors."""

    currency: str = PAYMENT_CURRENCY

    @abstractmethod
    def create_authorization(
        self, payer: Payer, amount_minor: int, metadata: Dict[str, Any]
    ) -> Authorization:
        """Start a charge. Raises GatewayError on network failure or rejection."""
        ...

    @abstractmethod
    def retrieve_authorization(self, authorization_id: str) -> Authorization:
        """Raises PaymentNotFoundError for an unknown id."""
        ...

    @abstractmethod
    def confirm_authorization(self, authorization_id: str) -> Authorization:
        ...

    @abstractmethod
    def cancel_authorization(self, authorization_id: str) -> Authorization:
        ...

    @abstractmethod
    def parse_event(self, payload: bytes, signature: Optional[str]) -> GatewayEvent:
        """Verify and decode a processor callback. Raises GatewayError if not authentic."""
        ...

    def to_minor_units(self, amount) -> int:
        return to_minor_units(amount)

    def to_decimal(self, amount_minor: int) -> Decimal:
        return to_decimal(amount_minor)


class FakePaymentGateway(PaymentGateway):
    """In-memory processor. Authorizations succeed unless configured otherwise."""

    def __init__(self, currency: str = PAYMENT_CURRENCY):
        self.currency = currency
        self.authorizations: Dict[str, Authorization] = {}
        self.metadata: Dict[str, Dict[str, Any]] = {}
        self.should_succeed = True
        self.failure_reason = "Card declined"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Card declined"):
        """Configure the fake processor behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_authorization(self, payer, amount_minor, metadata):
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        auth_id = f"pi_fake_{uuid.uuid4().hex[:16]}"
        auth = Authorization(
            id=auth_id,
            client_secret=f"{auth_id}_secret_{uuid.uuid4().hex[:8]}",
            currency=self.currency,
            status="requires_payment_method",
            amount=amount_minor,
            customer_id=payer.customer_id or f"cus_fake_{payer.user_id}",
        )
        self.authorizations[auth_id] = auth
        self.metadata[auth_id] = dict(metadata)
        return auth

    def retrieve_authorization(self, authorization_id):
        try:
            return self.authorizations[authorization_id]
        except KeyError:
            raise PaymentNotFoundError(f"No such authorization: {authorization_id}") from None

    def confirm_authorization(self, authorization_id):
        return self.set_status(authorization_id, "succeeded")

    def cancel_authorization(self, authorization_id):
        return self.set_status(authorization_id, "canceled")

    def set_status(self, authorization_id: str, status: str) -> Authorization:
        """Simulate the payer completing (or failing) the client-side step."""
        auth = replace(self.retrieve_authorization(authorization_id), status=status)
        self.authorizations[authorization_id] = auth
        return auth

    def parse_event(self, payload, signature):
        try:
            body = json.loads(payload)
            obj = body["data"]["object"]
            return GatewayEvent(type=body["type"], authorization_id=obj["id"], status=obj.get("status"))
        except (ValueError, KeyError, TypeError) as e:
            raise GatewayError(f"Malformed event payload: {e}") from e

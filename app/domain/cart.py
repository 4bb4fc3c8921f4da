# app/domain/cart.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from app.utils.settings import CART_TTL_SECONDS, GUEST_CART_TTL_SECONDS

USER_PREFIX = "cart:user:"
GUEST_PREFIX = "cart:guest:"


@dataclass(frozen=True)
class IdentityContext:
    """Who is calling: an authenticated user, a guest session, or both (at login)."""

    user_id: Optional[int] = None
    session_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


@dataclass(frozen=True)
class CartKey:
    value: str
    ttl: int

    @classmethod
    def for_user(cls, user_id: int) -> "CartKey":
        return cls(f"{USER_PREFIX}{user_id}", CART_TTL_SECONDS)

    @classmethod
    def for_guest(cls, session_id: str) -> "CartKey":
        return cls(f"{GUEST_PREFIX}{session_id}", GUEST_CART_TTL_SECONDS)

    @classmethod
    def for_identity(cls, identity: IdentityContext) -> "CartKey":
        # an authenticated request never touches the guest cart
        if identity.user_id is not None:
            return cls.for_user(identity.user_id)
        if identity.session_id:
            return cls.for_guest(identity.session_id)
        raise ValueError("Cannot derive a cart without a user or a session")

    @property
    def lock_name(self) -> str:
        return f"lock:{self.value}"

    @property
    def is_guest(self) -> bool:
        return self.value.startswith(GUEST_PREFIX)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProductInfo:
    id: int
    name: str
    price: Decimal


class CartRecord(Dict[int, int]):
    """
    productId -> quantity as stored at a CartKey.
    Only positive quantities are ever present.
    """

    @classmethod
    def from_hash(cls, raw: Dict[str, str]) -> "CartRecord":
        record = cls()
        for product_id, quantity in raw.items():
            qty = int(quantity)
            if qty > 0:
                record[int(product_id)] = qty
        return record


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    lines: List[CartLine] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0.00"))

    @property
    def item_count(self) -> int:
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict:
        return {
            "items": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "unit_price": line.unit_price,
                    "quantity": line.quantity,
                    "line_total": line.line_total,
                }
                for line in self.lines
            ],
            "total": self.total,
            "item_count": self.item_count,
        }

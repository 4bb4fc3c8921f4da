# app/domain/errors.py
"""
Domain errors for the cart and checkout flows.

They extend the builtin exception of their category so routers and callers
that already catch ValueError / LookupError / RuntimeError keep working.
"""


class TransientLockError(RuntimeError):
    """Cart lock not acquired within the wait window. Safe to retry."""

    def __init__(self, cart_key: str, waited: float):
        super().__init__(f"Cart {cart_key} is busy, try again")
        self.cart_key = cart_key
        self.waited = waited


class StoreUnavailableError(RuntimeError):
    """Cart store unreachable, the write did not happen."""


class EmptyCartError(ValueError):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InvalidTransitionError(ValueError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Order cannot move from {current} to {requested}")
        self.current = current
        self.requested = requested


class OrderNotFoundError(LookupError):
    pass


class GatewayError(RuntimeError):
    """Payment processor call failed (network error or rejection)."""


class PaymentNotFoundError(GatewayError):
    pass


class DanglingReferenceWarning(UserWarning):
    """Cart line points at a product that no longer resolves."""

import warnings
from contextlib import contextmanager
from typing import Iterator

from redis.exceptions import RedisError

from app.domain.cart import CartKey, CartLine, CartSnapshot
from app.domain.errors import DanglingReferenceWarning, StoreUnavailableError, TransientLockError
from app.repos.cart_repo import CartRepo
from app.services.catalog import CatalogLookup
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Redis-backed cart, one hash per CartKey.

    commands (add, update, remove, merge) run under the per-cart lock
    and are linearized by it; clear and reads are not locked, a read may
    see a slightly stale cart.

    Every read or write of a non-empty cart slides its TTL forward.
    """

    def __init__(
        self,
        repo: CartRepo,
        lock_service: LockService,
        catalog: CatalogLookup,
        notifications: NotificationService | None = None,
    ):
        self.repo = repo
        self.lock_service = lock_service
        self.catalog = catalog
        self.notifications = notifications

    @contextmanager
    def locked(self, key: CartKey, lease: int | None = None) -> Iterator[str]:
        """Hold the mutation lock of a cart, yields the lock token. Checkout uses it too."""
        try:
            with self.lock_service.hold(key.lock_name, lease=lease) as token:
                yield token
        except RedisError as e:
            #lock server down == cart store down, they share the instance
            logger.error(f"Lock for {key} unavailable: {e}")
            raise StoreUnavailableError(str(e)) from e

    #commands
    def add(self, key: CartKey, product_id: int, quantity: int = 1) -> bool:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        with self.locked(key):
            #HINCRBY + EXPIRE in one MULTI, under the lock
            new_quantity = self.repo.increment(key, product_id, quantity)

        logger.info(f"Added {quantity} x product {product_id} to {key}, now {new_quantity}")
        self._cart_updated(key, "add", product_id)
        return True

    def update(self, key: CartKey, product_id: int, quantity: int) -> None:
        with self.locked(key):
            if quantity <= 0:
                self.repo.delete_item(key, product_id)
            else:
                self.repo.set_quantity(key, product_id, quantity)

            #an emptied hash is gone already, nothing to expire
            if self.repo.size(key) > 0:
                self.repo.touch(key)

        logger.info(f"Set product {product_id} in {key} to {max(quantity, 0)}")
        self._cart_updated(key, "update", product_id)

    def remove(self, key: CartKey, product_id: int) -> None:
        with self.locked(key):
            self.repo.delete_item(key, product_id)
            if self.repo.size(key) > 0:
                self.repo.touch(key)

        logger.info(f"Removed product {product_id} from {key}")
        self._cart_updated(key, "remove", product_id)

    def clear(self, key: CartKey) -> bool:
        #idempotent, no partial state to protect -> no lock
        try:
            self.repo.delete(key)
        except StoreUnavailableError as e:
            logger.error(f"Could not clear {key}: {e}")
            return False

        logger.info(f"Cleared {key}")
        self._cart_updated(key, "clear")
        return True

    def deduct(self, key: CartKey, lines) -> bool:
        """
        Take ordered quantities out of the cart, keeping anything added since
        the snapshot. Used by checkout when its lock lease ran out.
        """
        try:
            with self.locked(key):
                for line in lines:
                    self.repo.increment(key, line.product_id, -line.quantity)
        except (StoreUnavailableError, TransientLockError) as e:
            logger.error(f"Could not deduct ordered lines from {key}: {e}")
            return False

        logger.info(f"Deducted {len(lines)} ordered lines from {key}")
        self._cart_updated(key, "deduct")
        return True

    def still_locked(self, key: CartKey, token: str) -> bool:
        try:
            return self.lock_service.is_held(key.lock_name, token)
        except RedisError as e:
            logger.warning(f"Could not check lock of {key}: {e}")
            return False

    def merge_guest_cart(self, guest_session_id: str, user_id: int) -> int:
        """
        Login hook: sum the guest cart into the user cart and retire the guest key.

        The increment-all-then-delete step is a single script, so a retry
        after a failure either finds the guest cart untouched or gone.
        """
        guest_key = CartKey.for_guest(guest_session_id)
        user_key = CartKey.for_user(user_id)

        with self.locked(user_key):
            merged = self.repo.merge(guest_key, user_key)

        if merged:
            logger.info(f"Merged {merged} lines from {guest_key} into {user_key}")
            self._cart_updated(user_key, "merge")
        return merged

    #queries
    def get_snapshot(self, key: CartKey) -> CartSnapshot:
        try:
            record = self.repo.get_record(key)
            if record:
                self.repo.touch(key)
        except StoreUnavailableError:
            logger.warning(f"Cart store unavailable, serving empty cart for {key}")
            return CartSnapshot()

        if not record:
            return CartSnapshot()

        products = self.catalog.get_products_by_ids(record.keys())

        lines = []
        for product_id, quantity in record.items():
            product = products.get(product_id)
            if product is None:
                #deleted or deactivated product silently drops out
                logger.warning(f"{key} references missing product {product_id}, skipping")
                warnings.warn(
                    f"product {product_id} in {key} no longer exists",
                    DanglingReferenceWarning,
                    stacklevel=2,
                )
                continue
            lines.append(
                CartLine(
                    product_id=product.id,
                    name=product.name,
                    unit_price=product.price,
                    quantity=quantity,
                )
            )

        return CartSnapshot(lines=lines)

    def get_ttl(self, key: CartKey) -> int:
        """Seconds left, -1 when the key never expires, -2 when there is no cart."""
        try:
            return self.repo.ttl(key)
        except StoreUnavailableError:
            return -2

    def extend_expiration(self, key: CartKey) -> bool:
        try:
            if not self.repo.exists(key):
                return False
            self.repo.touch(key)
            return True
        except StoreUnavailableError:
            return False

    def exists(self, key: CartKey) -> bool:
        try:
            return self.repo.exists(key)
        except StoreUnavailableError:
            return False

    def _cart_updated(self, key: CartKey, action: str, product_id: int | None = None) -> None:
        if self.notifications is None:
            return
        self.notifications.publish(
            "cart.updated",
            {"cart_key": key.value, "action": action, "product_id": product_id},
        )

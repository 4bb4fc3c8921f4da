# app/repos/cart_repo.py
from functools import wraps

import redis
from redis.exceptions import RedisError

from app.domain.cart import CartKey, CartRecord
from app.domain.errors import StoreUnavailableError
from app.utils.retry import redis_retry
from app.utils.logging import get_logger

logger = get_logger(__name__)

#sum every guest field into the user hash, drop the guest hash, refresh the ttl
#one script = one atomic step, a retry after success finds no guest hash and merges nothing
_MERGE_LUA = """
local guest = redis.call('HGETALL', KEYS[1])
local merged = 0
for i = 1, #guest, 2 do
    local qty = tonumber(guest[i + 1])
    if qty and qty > 0 then
        redis.call('HINCRBY', KEYS[2], guest[i], qty)
        merged = merged + 1
    end
end
redis.call('DEL', KEYS[1])
local ttl = tonumber(ARGV[1])
if merged > 0 and ttl > 0 then
    redis.call('EXPIRE', KEYS[2], ttl)
end
return merged
"""


def _store_call(fn):
    """Retries transient redis errors, then reports the store as unavailable."""
    retrying = redis_retry()(fn)

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return retrying(*args, **kwargs)
        except RedisError as e:
            logger.error(f"Cart store unavailable in {fn.__name__}: {e}")
            raise StoreUnavailableError(str(e)) from e

    return wrapper


class CartRepo:
    """
    Redis hash per cart key: field = product id, value = quantity.
    Knows nothing about locks; CartService decides when to hold one.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    @_store_call
    def get_record(self, key: CartKey) -> CartRecord:
        return CartRecord.from_hash(self.redis.hgetall(key.value))

    @_store_call
    def increment(self, key: CartKey, product_id: int, quantity: int) -> int:
        pipe = self.redis.pipeline(transaction=True)
        pipe.hincrby(key.value, product_id, quantity)
        if key.ttl > 0:
            pipe.expire(key.value, key.ttl)
        new_quantity = pipe.execute()[0]

        if new_quantity <= 0:
            #never leave a zero or negative quantity behind
            self.redis.hdel(key.value, product_id)
        return new_quantity

    @_store_call
    def set_quantity(self, key: CartKey, product_id: int, quantity: int) -> None:
        self.redis.hset(key.value, product_id, quantity)

    @_store_call
    def delete_item(self, key: CartKey, product_id: int) -> bool:
        return bool(self.redis.hdel(key.value, product_id))

    @_store_call
    def size(self, key: CartKey) -> int:
        return self.redis.hlen(key.value)

    @_store_call
    def delete(self, key: CartKey) -> bool:
        return bool(self.redis.delete(key.value))

    @_store_call
    def touch(self, key: CartKey) -> bool:
        if key.ttl <= 0:
            return False
        return bool(self.redis.expire(key.value, key.ttl))

    @_store_call
    def ttl(self, key: CartKey) -> int:
        return self.redis.ttl(key.value)

    @_store_call
    def exists(self, key: CartKey) -> bool:
        return self.redis.exists(key.value) > 0

    @_store_call
    def merge(self, source: CartKey, destination: CartKey) -> int:
        return int(
            self.redis.eval(_MERGE_LUA, 2, source.value, destination.value, destination.ttl)
        )

import time
import uuid
from contextlib import contextmanager
from typing import Iterator

import redis
from app.domain.errors import TransientLockError
from app.utils.retry import redis_retry
from app.utils.settings import REDIS_URL, CART_LOCK_TIMEOUT_SECONDS, CART_LOCK_WAIT_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)

#compare-and-delete as one atomic script
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis runs a lua script as a single uninterruptible operation,
#nobody can slip in between GET and DEL so only the owner token releases the lock

_POLL_INTERVAL = 0.05


class LockService:
    """
    -named mutual exclusion per cart (lock:<cart key>)
    -blocking acquire with a bounded wait, TransientLockError on timeout
    -lease (EX) so a crashed holder never blocks a cart forever
    -release atomically with lua
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        url: str | None = None,
        lease: int = CART_LOCK_TIMEOUT_SECONDS,
        wait: float = CART_LOCK_WAIT_SECONDS,
    ):
        self.redis = redis_client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.lease = lease
        self.wait = wait

    @redis_retry()
    def try_acquire(self, name: str, token: str, lease: int | None = None) -> bool:
        #SET lock:cart:user:1 "<token>" NX EX 5
        return bool(
            self.redis.set(
                name=name,
                value=token,
                nx=True,  #only if nobody holds it
                ex=lease or self.lease,  #expires on its own if the holder dies
            )
        )

    def acquire(self, name: str, wait: float | None = None, lease: int | None = None) -> str:
        wait = self.wait if wait is None else wait
        token = uuid.uuid4().hex
        deadline = time.monotonic() + wait

        while True:
            if self.try_acquire(name, token, lease):
                logger.debug(f"Acquired lock {name}")
                return token
            if time.monotonic() >= deadline:
                logger.warning(f"Timed out after {wait}s waiting for lock {name}")
                raise TransientLockError(name, wait)
            time.sleep(_POLL_INTERVAL)

    @redis_retry()
    def release(self, name: str, token: str) -> bool:
        res = self.redis.eval(_RELEASE_LUA, 1, name, token)
        if not res:
            #lease ran out and someone else owns it now
            logger.warning(f"Lock {name} was no longer held at release")
        return bool(res)

    @redis_retry()
    def is_held(self, name: str, token: str) -> bool:
        return self.redis.get(name) == token

    @contextmanager
    def hold(self, name: str, wait: float | None = None, lease: int | None = None) -> Iterator[str]:
        token = self.acquire(name, wait, lease)
        try:
            yield token
        finally:
            try:
                self.release(name, token)
            except redis.RedisError as e:
                #the lease frees it within self.lease seconds anyway
                logger.warning(f"Could not release lock {name}: {e}")

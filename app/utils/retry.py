# app/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import requests
import redis
import stripe


def _retry_on(exc_types, base: float, cap: float, attempts: int = 3):
    # reraise=True: callers see the original exception, not tenacity.RetryError
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base, min=base, max=cap),
        retry=retry_if_exception_type(exc_types),
    )


def http_retry():
    return _retry_on(requests.RequestException, 0.3, 3)


def redis_retry():
    # connection blips to the cart store; lock contention is not an error here
    return _retry_on(redis.RedisError, 0.2, 2)


def gateway_retry():
    # only connection-level failures, a declined card must not be retried
    return _retry_on(stripe.APIConnectionError, 0.5, 4)

# coursecart/utils/retry.py
from tenacity import (
    retry,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_random,
    retry_if_exception_type,
    retry_if_result,
)
import redis


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


def lock_wait_retry(max_wait_seconds: float = 3.0):
    """
    Ponawia probe zalozenia locka dopoki zwraca False.
    Po przekroczeniu czasu zwraca ostatni wynik (False), nie rzuca RetryError.
    """
    return retry(
        stop=stop_after_delay(max_wait_seconds),
        wait=wait_random(min=0.02, max=0.15),
        retry=retry_if_result(lambda acquired: not acquired),
        retry_error_callback=lambda state: state.outcome.result(),
    )

import uuid
from contextlib import contextmanager

import redis
from redis.exceptions import RedisError

from coursecart.domain.errors import CartBusy, ExternalFailure
from coursecart.utils.retry import redis_retry, lock_wait_retry
from coursecart.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje atomowo przez lua, skrypt dziala jako jedna nieprzerywalna operacja
#nie mozna wcisnac sie miedzy GET a DEL


class LockService:
    """
    -serializacja zmian koszyka (jeden mutator na koszyk naraz)
    -zwalnianie locka tylko przez wlasciciela tokenu
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _cart_key(cart_key: str) -> str:
        return f"cart:{cart_key}:lock"

    @redis_retry()
    def acquire(self, key: str, token: str, ttl: int) -> bool:
        #SET cart:1:lock "token" NX EX 10
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release(self, key: str, token: str) -> bool:
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def cart_lock(self, cart_key: str, ttl: int = CART_LOCK_TTL_SECONDS, wait: float = 3.0):
        """
        Lock na czas jednej mutacji koszyka. Czeka max `wait` sekund,
        potem CartBusy (klient moze ponowic).
        """
        key = self._cart_key(cart_key)
        token = uuid.uuid4().hex

        try:
            acquired = lock_wait_retry(wait)(self.acquire)(key, token, ttl)
        except RedisError as e:
            logger.error(f"Redis unavailable while locking {key}: {e}")
            raise ExternalFailure("Lock backend unavailable") from e

        if not acquired:
            logger.warning(f"Lock {key} still held after {wait}s")
            raise CartBusy("Cart is being modified by another request")

        logger.debug(f"Acquired lock {key}")
        try:
            yield
        finally:
            try:
                self.release(key, token)
            except RedisError as e:
                # lock i tak wygasnie po ttl
                logger.warning(f"Failed to release lock {key}: {e}")

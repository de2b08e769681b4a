import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from coursecart.domain.errors import CartBusy, ExternalFailure
from coursecart.services.lock_service import LockService


class DictRedis:
    """Minimalny klient: SET NX i skrypt compare-and-delete."""

    def __init__(self):
        self.data = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.data:
            return None
        self.data[name] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.data.get(key) == token:
            del self.data[key]
            return 1
        return 0


class DownRedis:
    def set(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    def eval(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")


def test_lock_is_released_after_block():
    client = DictRedis()
    locks = LockService(client=client)

    with locks.cart_lock("user-1"):
        assert "cart:user-1:lock" in client.data

    assert client.data == {}


def test_lock_is_released_on_error():
    client = DictRedis()
    locks = LockService(client=client)

    with pytest.raises(RuntimeError):
        with locks.cart_lock("user-1"):
            raise RuntimeError("boom")

    assert client.data == {}


def test_held_lock_gives_cart_busy():
    client = DictRedis()
    client.data["cart:user-1:lock"] = "someone-else"
    locks = LockService(client=client)

    with pytest.raises(CartBusy):
        with locks.cart_lock("user-1", wait=0.2):
            pass

    # cudzy lock zostaje
    assert client.data["cart:user-1:lock"] == "someone-else"


def test_release_only_by_owner():
    client = DictRedis()
    locks = LockService(client=client)
    client.data["k"] = "owner"

    assert locks.release("k", "intruder") is False
    assert locks.release("k", "owner") is True


def test_redis_down_is_external_failure():
    locks = LockService(client=DownRedis())

    with pytest.raises(ExternalFailure) as exc:
        with locks.cart_lock("user-1", wait=0.2):
            pass

    assert exc.value.retryable is True
    assert not isinstance(exc.value, CartBusy)

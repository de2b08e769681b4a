# coursecart/domain/identifiers.py
import hashlib
import secrets
from datetime import datetime

# bez 0/O i 1/I, kod czytany przez usera z paragonu
_TRACKING_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"


def derive_idempotency_key(cart_id, cart_version: int) -> str:
    """Ten sam koszyk w tej samej wersji -> ten sam klucz (podwojny klik)."""
    raw = f"{cart_id}:{cart_version}".encode()
    return "cart-" + hashlib.sha256(raw).hexdigest()


def new_order_number(now: datetime) -> str:
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(4).upper()}"


def new_tracking_code(length: int = 10) -> str:
    return "PAY-" + "".join(secrets.choice(_TRACKING_ALPHABET) for _ in range(length))

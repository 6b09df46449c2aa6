import secrets
import time
from uuid import uuid4


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def new_id() -> str:
    return str(uuid4())


def new_token() -> str:
    return secrets.token_urlsafe(32)

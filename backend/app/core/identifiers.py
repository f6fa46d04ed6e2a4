import random
import string
from datetime import datetime, timezone
from typing import Callable

REQUEST_ID_ALPHABET = string.ascii_uppercase + string.digits
REQUEST_ID_SUFFIX_LENGTH = 6

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_request_id(prefix: str, year: int, rng: random.Random) -> str:
    """Human readable request code, e.g. OR-REQ-2026-K3Z9QA."""
    suffix = "".join(rng.choices(REQUEST_ID_ALPHABET, k=REQUEST_ID_SUFFIX_LENGTH))
    return f"{prefix}-{year}-{suffix}"

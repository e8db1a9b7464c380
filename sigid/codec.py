from __future__ import annotations

import base64
import hashlib
import hmac
import math
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from .errors import HashMismatchError, IdentityError

Secret = Union[str, bytes, bytearray, memoryview]
TimeLike = Union[int, float, datetime]
Clock = Callable[[], float]
RandomBytes = Callable[[int], bytes]

MAC_SIZE = 32
TIME_WIDTH = 5
COUNTER_WIDTH = 2
NOISE_WIDTH = 2

IDENTITY_SIZE = TIME_WIDTH + COUNTER_WIDTH + NOISE_WIDTH
PAYLOAD_SIZE = TIME_WIDTH + TIME_WIDTH + IDENTITY_SIZE
SIGNED_SIZE = MAC_SIZE + PAYLOAD_SIZE
LIFELINE_SIZE = MAC_SIZE + TIME_WIDTH

_BASE64URL = re.compile(r"[A-Za-z0-9_-]*")


def extract(data: bytes, offset: int = 0, length: Optional[int] = None) -> bytes:
    if length is None:
        length = len(data) - offset
    return bytes(data[offset:offset + length])


def pack_uint(value: int, width: int, field_name: str = "value") -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise IdentityError(f"{field_name} must be an integer")
    if value < 0:
        raise IdentityError(f"{field_name} must be non-negative")
    if value >= 1 << (8 * width):
        raise IdentityError(f"{field_name} must fit in {width} bytes")
    return value.to_bytes(width, "big")


def unpack_uint(data: bytes, offset: int = 0, width: Optional[int] = None) -> int:
    chunk = extract(data, offset, width)
    if width is not None and len(chunk) != width:
        raise IdentityError(f"expected {width} bytes at offset {offset}")
    return int.from_bytes(chunk, "big")


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(bytes(data)).decode("ascii").rstrip("=")


def b64url_decode(value: str, field_name: str = "value") -> bytes:
    if not isinstance(value, str):
        raise IdentityError(f"{field_name} must be a base64url string")
    if "=" in value or _BASE64URL.fullmatch(value) is None:
        raise IdentityError(f"{field_name} must be base64url without padding")
    pad_len = (4 - (len(value) % 4)) % 4
    try:
        return base64.urlsafe_b64decode(value + ("=" * pad_len))
    except ValueError as exc:
        raise IdentityError(f"{field_name} must be base64url without padding") from exc


def floor_int(value: Any, field_name: str = "value") -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise IdentityError(f"{field_name} must be a number")
    try:
        return math.floor(value)
    except (ValueError, OverflowError) as exc:
        raise IdentityError(f"{field_name} must be finite") from exc


def to_seconds(value: TimeLike, field_name: str = "value") -> int:
    if isinstance(value, datetime):
        value = value.timestamp()
    return floor_int(value, field_name)


def to_datetime(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def now(clock: Optional[Clock] = None) -> float:
    return (clock or time.time)()


def resolve_time(at: Optional[TimeLike], clock: Optional[Clock] = None) -> float:
    if at is None:
        return now(clock)
    if isinstance(at, datetime):
        return at.timestamp()
    if isinstance(at, bool) or not isinstance(at, (int, float)):
        raise IdentityError("reference time must be a number or datetime")
    return at


def timestamp(offset: float = 0, clock: Optional[Clock] = None) -> int:
    return math.floor(now(clock) + offset)


def is_secret(value: Any) -> bool:
    return isinstance(value, (str, bytes, bytearray, memoryview))


def secret_bytes(secret: Secret) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    if isinstance(secret, (bytes, bytearray, memoryview)):
        return bytes(secret)
    raise IdentityError("secret must be str or bytes")


def mac(secret: Secret, message: bytes) -> bytes:
    return hmac.new(secret_bytes(secret), bytes(message), hashlib.sha256).digest()


def compare_mac(given: bytes, generated: bytes) -> None:
    if len(given) != len(generated):
        raise HashMismatchError("given hash and generated hash do not share the same length", reason="length")
    if not hmac.compare_digest(given, generated):
        raise HashMismatchError("given hash and generated hash do not share the same data", reason="content")

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

import nacl.utils

from .codec import (
    COUNTER_WIDTH,
    IDENTITY_SIZE,
    NOISE_WIDTH,
    SIGNED_SIZE,
    TIME_WIDTH,
    Clock,
    RandomBytes,
    TimeLike,
    b64url_decode,
    b64url_encode,
    floor_int,
    pack_uint,
    timestamp as current_timestamp,
    to_datetime,
    to_seconds,
    unpack_uint,
)
from .counter import Counter, default_counter
from .errors import IdentityError

IDENTITY_KEYS = frozenset({"timestamp", "counter", "noise"})


def pack_identity(timestamp: int, counter: int, noise: int) -> bytes:
    return (
        pack_uint(timestamp, TIME_WIDTH, "timestamp")
        + pack_uint(counter, COUNTER_WIDTH, "counter")
        + pack_uint(noise, NOISE_WIDTH, "noise")
    )


def unpack_identity(data: bytes, offset: int = 0) -> "Identity":
    return Identity(
        timestamp=unpack_uint(data, offset, TIME_WIDTH),
        counter=unpack_uint(data, offset + TIME_WIDTH, COUNTER_WIDTH),
        noise=unpack_uint(data, offset + TIME_WIDTH + COUNTER_WIDTH, NOISE_WIDTH),
    )


def draw_noise(random_bytes: Optional[RandomBytes] = None) -> int:
    return int.from_bytes((random_bytes or nacl.utils.random)(NOISE_WIDTH), "big")


def _as_bytes(data: Any) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise IdentityError("identity data must be bytes")
    return bytes(data)


def _is_identity_like(value: Any) -> bool:
    return not isinstance(value, Mapping) and all(hasattr(value, k) for k in ("timestamp", "counter", "noise"))


@dataclass(frozen=True)
class Identity:
    timestamp: int
    counter: int
    noise: int
    _bytes: bytes = field(init=False, repr=False, compare=False)
    _base64: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        data = pack_identity(self.timestamp, self.counter, self.noise)
        object.__setattr__(self, "_bytes", data)
        object.__setattr__(self, "_base64", b64url_encode(data))

    @classmethod
    def create(
        cls,
        timestamp: Optional[TimeLike] = None,
        counter: Optional[float] = None,
        noise: Optional[float] = None,
        *,
        sequence: Optional[Counter] = None,
        clock: Optional[Clock] = None,
        random_bytes: Optional[RandomBytes] = None,
    ) -> Identity:
        ts = None if timestamp is None else to_seconds(timestamp, "timestamp")
        if counter is None:
            tick, ctr = (sequence or default_counter(clock)).next()
            if ts is None:
                ts = tick
        else:
            ctr = floor_int(counter, "counter")
        if ts is None:
            ts = current_timestamp(clock=clock)
        nz = draw_noise(random_bytes) if noise is None else floor_int(noise, "noise")
        return cls(timestamp=ts, counter=ctr, noise=nz)

    @classmethod
    def from_bytes(cls, data: bytes) -> Identity:
        data = _as_bytes(data)
        if len(data) == IDENTITY_SIZE:
            return unpack_identity(data, 0)
        if len(data) == SIGNED_SIZE:
            return unpack_identity(data, SIGNED_SIZE - IDENTITY_SIZE)
        raise IdentityError("invalid byte array length")

    @classmethod
    def from_base64(cls, text: str) -> Identity:
        return cls.from_bytes(b64url_decode(text, "identity"))

    @classmethod
    def from_options(cls, options: Mapping[str, Any], **sources: Any) -> Identity:
        if not isinstance(options, Mapping):
            raise IdentityError("identity options must be a mapping")
        unknown = set(options.keys()) - IDENTITY_KEYS
        if unknown:
            raise IdentityError(f"unknown identity keys: {sorted(unknown)}")
        return cls.create(options.get("timestamp"), options.get("counter"), options.get("noise"), **sources)

    @classmethod
    def clone(cls, other: Any) -> Identity:
        if not _is_identity_like(other):
            raise IdentityError("cannot clone an object without timestamp, counter and noise")
        return cls(timestamp=other.timestamp, counter=other.counter, noise=other.noise)

    @classmethod
    def from_any(
        cls,
        value: Any = None,
        counter: Optional[float] = None,
        noise: Optional[float] = None,
        **sources: Any,
    ) -> Identity:
        if isinstance(value, str):
            return cls.from_base64(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.from_bytes(value)
        if isinstance(value, Mapping):
            return cls.from_options(value, **sources)
        if value is None or isinstance(value, (int, float, datetime)) and not isinstance(value, bool):
            return cls.create(value, counter, noise, **sources)
        if _is_identity_like(value):
            return cls.clone(value)
        raise IdentityError("invalid overload")

    def to_bytes(self) -> bytes:
        return self._bytes

    def to_base64(self) -> str:
        return self._base64

    def to_datetime(self) -> datetime:
        return to_datetime(self.timestamp)

    def __str__(self) -> str:
        return self._base64

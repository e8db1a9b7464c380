from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .codec import (
    LIFELINE_SIZE,
    MAC_SIZE,
    TIME_WIDTH,
    TimeLike,
    b64url_decode,
    b64url_encode,
    compare_mac,
    extract,
    floor_int,
    pack_uint,
    resolve_time,
    to_datetime,
    to_seconds,
    unpack_uint,
)
from .errors import ExpiredError, HashMismatchError, IdentityError
from .log import get_logger

if TYPE_CHECKING:
    from .signed import SignedIdentity

logger = get_logger(__name__)

LIFELINE_KEYS = frozenset({"hash", "expires_at"})


def lifeline_message(signed_identity: SignedIdentity, expires_at: int) -> bytes:
    return signed_identity.hash + pack_uint(expires_at, TIME_WIDTH, "expires_at")


@dataclass(frozen=True)
class Lifeline:
    """Wire form: ``hash(32) || expires_at(5)``; hash is ``HMAC(secret, signed.hash || expires_at(5))``."""

    hash: bytes
    expires_at: int
    _bytes: Optional[bytes] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.hash, (bytes, bytearray, memoryview)):
            raise IdentityError("lifeline hash must be bytes")
        digest = bytes(self.hash)
        expires = pack_uint(self.expires_at, TIME_WIDTH, "expires_at")
        object.__setattr__(self, "hash", digest)
        object.__setattr__(self, "_bytes", digest + expires if len(digest) == MAC_SIZE else None)

    @classmethod
    def create(cls, signed_identity: SignedIdentity, expires_at: TimeLike) -> Lifeline:
        expires = to_seconds(expires_at, "expires_at")
        digest = signed_identity._sign(lifeline_message(signed_identity, expires))
        logger.debug("lifeline.created", identity=signed_identity.identity.to_base64(), expires_at=expires)
        return cls(hash=digest, expires_at=expires)

    @classmethod
    def from_bytes(cls, data: bytes) -> Lifeline:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise IdentityError("lifeline data must be bytes")
        data = bytes(data)
        if len(data) != LIFELINE_SIZE:
            raise IdentityError("invalid byte array length")
        return cls(hash=extract(data, 0, MAC_SIZE), expires_at=unpack_uint(data, MAC_SIZE, TIME_WIDTH))

    @classmethod
    def from_base64(cls, text: str) -> Lifeline:
        return cls.from_bytes(b64url_decode(text, "lifeline"))

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> Lifeline:
        missing = LIFELINE_KEYS - set(options.keys())
        if missing:
            raise IdentityError(f"missing lifeline keys: {sorted(missing)}")
        unknown = set(options.keys()) - LIFELINE_KEYS
        if unknown:
            raise IdentityError(f"unknown lifeline keys: {sorted(unknown)}")
        return cls(hash=options["hash"], expires_at=to_seconds(options["expires_at"], "expires_at"))

    @classmethod
    def clone(cls, other: Lifeline) -> Lifeline:
        return cls(hash=other.hash, expires_at=other.expires_at)

    @classmethod
    def from_any(cls, value: Any) -> Lifeline:
        if isinstance(value, Lifeline):
            return cls.clone(value)
        if isinstance(value, str):
            return cls.from_base64(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.from_bytes(value)
        if isinstance(value, Mapping):
            return cls.from_options(value)
        raise IdentityError("invalid overload")

    @classmethod
    def check(
        cls,
        value: Any,
        signed_identity: SignedIdentity,
        since: Optional[TimeLike] = None,
    ) -> Lifeline:
        return cls.from_any(value).validate(signed_identity=signed_identity, since=since)

    def validate_hash(self, signed_identity: SignedIdentity) -> Lifeline:
        generated = signed_identity._sign(lifeline_message(signed_identity, self.expires_at))
        try:
            compare_mac(self.hash, generated)
        except HashMismatchError as exc:
            logger.debug("lifeline.hash_mismatch", reason=exc.reason, identity=signed_identity.identity.to_base64())
            raise
        return self

    def validate_expiration(self, since: Optional[TimeLike] = None) -> Lifeline:
        reference = floor_int(resolve_time(since), "since")
        if reference > self.expires_at:
            raise ExpiredError("lifeline is expired", expires_at=self.expires_at, at=reference)
        return self

    def validate(
        self,
        signed_identity: Optional[SignedIdentity] = None,
        since: Optional[TimeLike] = None,
    ) -> Lifeline:
        self.validate_expiration(since)
        if signed_identity is not None:
            self.validate_hash(signed_identity)
        return self

    def expires(self) -> datetime:
        return to_datetime(self.expires_at)

    def to_bytes(self) -> bytes:
        if self._bytes is None:
            raise IdentityError(f"hash must be {MAC_SIZE} bytes to encode")
        return self._bytes

    def to_base64(self) -> str:
        return b64url_encode(self.to_bytes())

    def __str__(self) -> str:
        return self.to_base64()

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .codec import (
    IDENTITY_SIZE,
    MAC_SIZE,
    SIGNED_SIZE,
    TIME_WIDTH,
    Clock,
    RandomBytes,
    Secret,
    TimeLike,
    b64url_decode,
    b64url_encode,
    compare_mac,
    extract,
    floor_int,
    is_secret,
    mac,
    pack_uint,
    resolve_time,
    to_datetime,
    to_seconds,
    unpack_uint,
)
from .counter import Counter
from .errors import ExpiredError, HashMismatchError, IdentityError, IncompleteError
from .identity import IDENTITY_KEYS, Identity, unpack_identity
from .log import get_logger

if TYPE_CHECKING:
    from .lifeline import Lifeline

logger = get_logger(__name__)

DEFAULT_MAX_AGE = 60

SIGNED_KEYS = IDENTITY_KEYS | {"secret", "issued_at", "expires_at", "max_age", "hash"}


class Stage:
    VALID = "VALID"
    INVALID = "INVALID"
    EXPIRED = "EXPIRED"


def _optional_hash(value: Any) -> Optional[bytes]:
    if value is None:
        return None
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise IdentityError("hash must be bytes")
    return bytes(value)


@dataclass(frozen=True, eq=False)
class SignedIdentity:
    """Wire form: ``hash(32) || issued_at(5) || expires_at(5) || identity(9)``."""

    identity: Identity
    issued_at: int
    expires_at: int
    secret: Secret = field(repr=False)
    given_hash: Optional[bytes] = field(default=None, repr=False)
    _payload: bytes = field(init=False, repr=False)
    _computed_hash: bytes = field(init=False, repr=False)
    _bytes: Optional[bytes] = field(init=False, repr=False)
    _base64: Optional[str] = field(init=False, repr=False)

    DEFAULT_MAX_AGE = DEFAULT_MAX_AGE

    def __post_init__(self) -> None:
        if not isinstance(self.identity, Identity):
            raise IdentityError("identity must be an Identity")
        if not is_secret(self.secret):
            raise IdentityError("missing secret")
        given = _optional_hash(self.given_hash)
        payload = (
            pack_uint(self.issued_at, TIME_WIDTH, "issued_at")
            + pack_uint(self.expires_at, TIME_WIDTH, "expires_at")
            + self.identity.to_bytes()
        )
        computed = mac(self.secret, payload)
        current = computed if given is None else given
        encoded = current + payload if len(current) == MAC_SIZE else None
        object.__setattr__(self, "given_hash", given)
        object.__setattr__(self, "_payload", payload)
        object.__setattr__(self, "_computed_hash", computed)
        object.__setattr__(self, "_bytes", encoded)
        object.__setattr__(self, "_base64", None if encoded is None else b64url_encode(encoded))

    @classmethod
    def _build(
        cls,
        identity: Identity,
        secret: Secret,
        *,
        issued_at: Optional[TimeLike] = None,
        expires_at: Optional[TimeLike] = None,
        max_age: Optional[float] = None,
        hash: Optional[bytes] = None,
        clock: Optional[Clock] = None,
    ) -> SignedIdentity:
        if not is_secret(secret):
            raise IdentityError("missing secret")
        current = resolve_time(None, clock)
        base = current if issued_at is None else resolve_time(issued_at)
        issued = floor_int(base, "issued_at")
        if expires_at is not None:
            expires = to_seconds(expires_at, "expires_at")
        elif max_age is not None:
            floor_int(max_age, "max_age")
            expires = floor_int(base + max_age, "expires_at")
        else:
            expires = floor_int(current + DEFAULT_MAX_AGE, "expires_at")
        return cls(identity=identity, issued_at=issued, expires_at=expires, secret=secret, given_hash=_optional_hash(hash))

    @classmethod
    def create(
        cls,
        secret: Secret,
        *,
        timestamp: Optional[TimeLike] = None,
        counter: Optional[float] = None,
        noise: Optional[float] = None,
        issued_at: Optional[TimeLike] = None,
        expires_at: Optional[TimeLike] = None,
        max_age: Optional[float] = None,
        hash: Optional[bytes] = None,
        sequence: Optional[Counter] = None,
        clock: Optional[Clock] = None,
        random_bytes: Optional[RandomBytes] = None,
    ) -> SignedIdentity:
        if not is_secret(secret):
            raise IdentityError("missing secret")
        identity = Identity.create(timestamp, counter, noise, sequence=sequence, clock=clock, random_bytes=random_bytes)
        return cls._build(
            identity,
            secret,
            issued_at=issued_at,
            expires_at=expires_at,
            max_age=max_age,
            hash=hash,
            clock=clock,
        )

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any],
        *,
        sequence: Optional[Counter] = None,
        clock: Optional[Clock] = None,
        random_bytes: Optional[RandomBytes] = None,
    ) -> SignedIdentity:
        if not isinstance(options, Mapping) or not is_secret(options.get("secret")):
            raise IdentityError("missing secret")
        unknown = set(options.keys()) - SIGNED_KEYS
        if unknown:
            raise IdentityError(f"unknown signed identity keys: {sorted(unknown)}")
        fields = dict(options)
        secret = fields.pop("secret")
        return cls.create(secret, sequence=sequence, clock=clock, random_bytes=random_bytes, **fields)

    @classmethod
    def sign(
        cls,
        identity: Any,
        secret: Secret,
        *,
        issued_at: Optional[TimeLike] = None,
        expires_at: Optional[TimeLike] = None,
        max_age: Optional[float] = None,
        sequence: Optional[Counter] = None,
        clock: Optional[Clock] = None,
        random_bytes: Optional[RandomBytes] = None,
    ) -> SignedIdentity:
        if isinstance(identity, Mapping):
            ident = Identity.from_options(identity, sequence=sequence, clock=clock, random_bytes=random_bytes)
        else:
            ident = Identity.clone(identity)
        return cls._build(ident, secret, issued_at=issued_at, expires_at=expires_at, max_age=max_age, clock=clock)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        secret: Secret,
        *,
        max_age: Optional[float] = None,
        clock: Optional[Clock] = None,
    ) -> SignedIdentity:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise IdentityError("signed identity data must be bytes")
        data = bytes(data)
        if len(data) == IDENTITY_SIZE:
            return cls._build(unpack_identity(data, 0), secret, max_age=max_age, clock=clock)
        if len(data) != SIGNED_SIZE:
            raise IdentityError("invalid byte array length")
        if not is_secret(secret):
            raise IdentityError("missing secret")
        return cls(
            identity=unpack_identity(data, SIGNED_SIZE - IDENTITY_SIZE),
            issued_at=unpack_uint(data, MAC_SIZE, TIME_WIDTH),
            expires_at=unpack_uint(data, MAC_SIZE + TIME_WIDTH, TIME_WIDTH),
            secret=secret,
            given_hash=extract(data, 0, MAC_SIZE),
        )

    @classmethod
    def from_base64(cls, text: str, secret: Secret, **kwargs: Any) -> SignedIdentity:
        return cls.from_bytes(b64url_decode(text, "signed identity"), secret, **kwargs)

    @classmethod
    def clone(cls, other: SignedIdentity) -> SignedIdentity:
        if not isinstance(other, SignedIdentity):
            raise IdentityError("can only clone a SignedIdentity")
        return cls(
            identity=other.identity,
            issued_at=other.issued_at,
            expires_at=other.expires_at,
            secret=other.secret,
            given_hash=other.hash,
        )

    @classmethod
    def from_any(
        cls,
        value: Any,
        secret: Optional[Secret] = None,
        *,
        sequence: Optional[Counter] = None,
        clock: Optional[Clock] = None,
        random_bytes: Optional[RandomBytes] = None,
    ) -> SignedIdentity:
        """With a secret, ``value`` is a token or identity to sign; without one, a secret-like ``value`` mints a new token."""
        if secret is not None and is_secret(secret):
            if isinstance(value, str):
                return cls.from_base64(value, secret, clock=clock)
            if isinstance(value, (bytes, bytearray, memoryview)):
                return cls.from_bytes(value, secret, clock=clock)
            if isinstance(value, Mapping) or hasattr(value, "timestamp"):
                return cls.sign(value, secret, sequence=sequence, clock=clock, random_bytes=random_bytes)
            raise IdentityError("invalid overload")
        if secret is None and is_secret(value):
            return cls.create(value, sequence=sequence, clock=clock, random_bytes=random_bytes)
        if isinstance(value, SignedIdentity):
            return cls.clone(value)
        if isinstance(value, Mapping):
            return cls.from_options(value, sequence=sequence, clock=clock, random_bytes=random_bytes)
        raise IdentityError("missing secret")

    @staticmethod
    def is_secret(value: Any) -> bool:
        return is_secret(value)

    @classmethod
    def stage_of(
        cls,
        value: Any,
        secret: Optional[Secret] = None,
        offset: float = 0,
        at: Optional[TimeLike] = None,
    ) -> str:
        return cls.from_any(value, secret).stage(offset, at)

    @property
    def timestamp(self) -> int:
        return self.identity.timestamp

    @property
    def counter(self) -> int:
        return self.identity.counter

    @property
    def noise(self) -> int:
        return self.identity.noise

    @property
    def hash(self) -> bytes:
        return self._computed_hash if self.given_hash is None else self.given_hash

    @property
    def incomplete(self) -> bool:
        return self.given_hash is None

    def payload(self) -> bytes:
        return self._payload

    def issued(self) -> datetime:
        return to_datetime(self.issued_at)

    def expires(self) -> datetime:
        return to_datetime(self.expires_at)

    def to_identity(self) -> Identity:
        return self.identity

    def to_bytes(self) -> bytes:
        if self._bytes is None:
            raise IdentityError(f"hash must be {MAC_SIZE} bytes to encode")
        return self._bytes

    def to_base64(self) -> str:
        if self._base64 is None:
            raise IdentityError(f"hash must be {MAC_SIZE} bytes to encode")
        return self._base64

    def _sign(self, message: bytes) -> bytes:
        return mac(self.secret, message)

    def expired(self, offset: float = 0, at: Optional[TimeLike] = None) -> bool:
        """True once ``floor(at + offset)`` is past ``expires_at``."""
        return floor_int(resolve_time(at) + offset, "at") > self.expires_at

    def verify_hash(self) -> SignedIdentity:
        try:
            compare_mac(self.hash, self._computed_hash)
        except HashMismatchError as exc:
            logger.debug("signed_identity.hash_mismatch", reason=exc.reason, identity=self.identity.to_base64())
            raise
        return self

    def verify_complete(self) -> SignedIdentity:
        if self.incomplete:
            raise IncompleteError("identity is missing signature")
        return self

    def verify_expiration(self, offset: float = 0, at: Optional[TimeLike] = None) -> SignedIdentity:
        reference = floor_int(resolve_time(at) + offset, "at")
        if reference > self.expires_at:
            raise ExpiredError("signed identity is expired", expires_at=self.expires_at, at=reference)
        return self

    def _hash_valid(self) -> bool:
        try:
            self.verify_hash()
            return True
        except HashMismatchError:
            return False

    def stage(self, offset: float = 0, at: Optional[TimeLike] = None) -> str:
        if self.expired(offset, at):
            result = Stage.EXPIRED
        elif not self._hash_valid():
            result = Stage.INVALID
        else:
            result = Stage.VALID
        logger.debug("signed_identity.stage", stage=result, identity=self.identity.to_base64())
        return result

    def lifeline(self, expires_at: TimeLike) -> Lifeline:
        from .lifeline import Lifeline

        return Lifeline.create(self, expires_at)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignedIdentity):
            return NotImplemented
        return (self.identity, self.issued_at, self.expires_at, self.hash) == (
            other.identity,
            other.issued_at,
            other.expires_at,
            other.hash,
        )

    def __hash__(self) -> int:
        return hash((self.identity, self.issued_at, self.expires_at, self.hash))

    def __str__(self) -> str:
        return self.to_base64()

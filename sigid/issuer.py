from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

import nacl.utils

from .codec import Clock, RandomBytes, Secret, TimeLike, is_secret, resolve_time
from .config import IssuerConfig
from .counter import Counter
from .errors import ExpiredError, HashMismatchError, IdentityError, IncompleteError
from .identity import Identity
from .lifeline import Lifeline
from .log import get_logger
from .signed import SignedIdentity, Stage

logger = get_logger(__name__)


class VerifyFailureCode:
    VERIFIED = "VERIFIED"
    RENEWED = "RENEWED"
    MALFORMED_INPUT = "MALFORMED_INPUT"
    INCOMPLETE = "INCOMPLETE"
    EXPIRED = "EXPIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


@dataclass
class VerifyReport:
    ok: bool
    code: str
    identity: str = ""
    expires_at: int = 0
    message: str = ""


class Issuer:
    def __init__(
        self,
        secret: Secret,
        config: Optional[IssuerConfig] = None,
        sequence: Optional[Counter] = None,
        clock: Optional[Clock] = None,
        random_bytes: Optional[RandomBytes] = None,
    ):
        if not is_secret(secret) or len(secret) == 0:
            raise IdentityError("secret is required")
        self.secret = secret
        self.config = config or IssuerConfig()
        self.clock = clock or time.time
        self.sequence = sequence or Counter(self.config.counter_max, clock=self.clock)
        self.random_bytes = random_bytes or nacl.utils.random

    def identity(
        self,
        timestamp: Optional[TimeLike] = None,
        counter: Optional[float] = None,
        noise: Optional[float] = None,
    ) -> Identity:
        return Identity.create(
            timestamp,
            counter,
            noise,
            sequence=self.sequence,
            clock=self.clock,
            random_bytes=self.random_bytes,
        )

    def issue(
        self,
        *,
        timestamp: Optional[TimeLike] = None,
        counter: Optional[float] = None,
        noise: Optional[float] = None,
        issued_at: Optional[TimeLike] = None,
        expires_at: Optional[TimeLike] = None,
        max_age: Optional[float] = None,
    ) -> SignedIdentity:
        if max_age is None and expires_at is None:
            max_age = self.config.max_age
        signed = SignedIdentity.create(
            self.secret,
            timestamp=timestamp,
            counter=counter,
            noise=noise,
            issued_at=issued_at,
            expires_at=expires_at,
            max_age=max_age,
            sequence=self.sequence,
            clock=self.clock,
            random_bytes=self.random_bytes,
        )
        logger.debug("issuer.issued", identity=signed.identity.to_base64(), expires_at=signed.expires_at)
        return signed

    def parse(self, token: Any) -> SignedIdentity:
        if isinstance(token, SignedIdentity):
            token = token.to_bytes()
        if isinstance(token, str):
            return SignedIdentity.from_base64(token, self.secret, max_age=self.config.max_age, clock=self.clock)
        if isinstance(token, (bytes, bytearray, memoryview)):
            return SignedIdentity.from_bytes(token, self.secret, max_age=self.config.max_age, clock=self.clock)
        raise IdentityError("invalid overload")

    def stage(self, token: Any, offset: float = 0, at: Optional[TimeLike] = None) -> str:
        return self.parse(token).stage(offset, resolve_time(at, self.clock))

    def renew(self, token: Any, expires_at: Optional[TimeLike] = None) -> Lifeline:
        signed = self.parse(token).verify_hash()
        if expires_at is None:
            expires_at = self.clock() + self.config.lifeline_max_age
        return signed.lifeline(expires_at)

    def verify(
        self,
        token: Any,
        lifeline: Any = None,
        offset: float = 0,
        at: Optional[TimeLike] = None,
    ) -> VerifyReport:
        reference = resolve_time(at, self.clock)
        try:
            signed = self.parse(token)
            if self.config.require_complete:
                signed.verify_complete()
        except IncompleteError as exc:
            return self._report(False, VerifyFailureCode.INCOMPLETE, message=str(exc))
        except IdentityError as exc:
            return self._report(False, VerifyFailureCode.MALFORMED_INPUT, message=str(exc))

        identity = signed.identity.to_base64()
        stage = signed.stage(offset, reference)
        if stage == Stage.VALID:
            return self._report(True, VerifyFailureCode.VERIFIED, identity, signed.expires_at)
        if stage == Stage.INVALID:
            return self._report(False, VerifyFailureCode.INVALID_SIGNATURE, identity, message="signed identity hash mismatch")
        if lifeline is None:
            return self._report(False, VerifyFailureCode.EXPIRED, identity, signed.expires_at, "signed identity is expired")

        try:
            signed.verify_hash()
            renewal = Lifeline.check(lifeline, signed, since=reference + offset)
        except ExpiredError as exc:
            return self._report(False, VerifyFailureCode.EXPIRED, identity, signed.expires_at, str(exc))
        except HashMismatchError as exc:
            return self._report(False, VerifyFailureCode.INVALID_SIGNATURE, identity, message=str(exc))
        except IdentityError as exc:
            return self._report(False, VerifyFailureCode.MALFORMED_INPUT, identity, message=str(exc))
        return self._report(True, VerifyFailureCode.RENEWED, identity, renewal.expires_at)

    def _report(self, ok: bool, code: str, identity: str = "", expires_at: int = 0, message: str = "") -> VerifyReport:
        logger.debug("issuer.verify", ok=ok, code=code, identity=identity)
        return VerifyReport(ok=ok, code=code, identity=identity, expires_at=expires_at, message=message)

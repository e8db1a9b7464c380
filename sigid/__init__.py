from .codec import b64url_decode, b64url_encode
from .config import IssuerConfig
from .counter import Counter, default_counter
from .errors import ExpiredError, HashMismatchError, IdentityError, IncompleteError
from .identity import Identity
from .issuer import Issuer, VerifyFailureCode, VerifyReport
from .lifeline import Lifeline
from .signed import DEFAULT_MAX_AGE, SignedIdentity, Stage

__all__ = [
    "Counter",
    "default_counter",
    "Identity",
    "SignedIdentity",
    "Stage",
    "DEFAULT_MAX_AGE",
    "Lifeline",
    "Issuer",
    "IssuerConfig",
    "VerifyFailureCode",
    "VerifyReport",
    "IdentityError",
    "IncompleteError",
    "ExpiredError",
    "HashMismatchError",
    "b64url_encode",
    "b64url_decode",
]

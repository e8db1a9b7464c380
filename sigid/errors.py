from __future__ import annotations

from typing import Optional


class IdentityError(ValueError):
    """Malformed input, unsatisfiable overload or missing secret."""


class IncompleteError(IdentityError):
    pass


class ExpiredError(IdentityError):
    def __init__(self, message: str, expires_at: Optional[int] = None, at: Optional[int] = None):
        super().__init__(message)
        self.expires_at = expires_at
        self.at = at


class HashMismatchError(IdentityError):
    def __init__(self, message: str, reason: str = "content"):
        super().__init__(message)
        self.reason = reason

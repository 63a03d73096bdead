"""
Error kinds produced by the authentication components.

Components return an ``AuthFailure`` instead of raising so the API layer can
map every kind to a transport status in one place (see ``app.api.deps``).
The kind and reason are for logs only; clients get a generic message.
"""

from dataclasses import dataclass
from enum import Enum


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "InvalidCredentials"
    MISSING_TOKEN = "MissingToken"
    INVALID_TOKEN = "InvalidToken"
    MISSING_REFRESH_TOKEN = "MissingRefreshToken"
    INVALID_REFRESH_TOKEN = "InvalidRefreshToken"
    ACCOUNT_NOT_FOUND = "AccountNotFound"


@dataclass(frozen=True)
class AuthFailure:
    kind: AuthErrorKind
    reason: str = ""

    def __str__(self) -> str:
        if self.reason:
            return f"{self.kind.value}: {self.reason}"
        return self.kind.value


class SigningError(RuntimeError):
    """Token signing is misconfigured. Raised at startup, never per request."""

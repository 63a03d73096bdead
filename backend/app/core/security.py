from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple, Optional, Union
import uuid

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError

from app.core.auth_errors import AuthErrorKind, AuthFailure, SigningError
from app.core.config import Settings, settings

_SUPPORTED_ALGORITHMS = {"HS256", "HS384", "HS512"}

_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    # bcrypt ignores (newer releases reject) input past 72 bytes
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a candidate password against a stored bcrypt hash.

    The cost factor and salt are read back from ``hashed_password`` itself,
    so a hash made under an older BCRYPT_SALT_ROUNDS still verifies. A
    malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    One-way hash with a fresh salt per call.

    ``rounds`` overrides settings.BCRYPT_SALT_ROUNDS (tests use 4).
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_SALT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


@dataclass(frozen=True)
class TokenConfig:
    """Signing material and lifetimes for both token kinds."""

    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)

    def __post_init__(self) -> None:
        if not self.access_secret or not self.access_secret.strip():
            raise SigningError("Access token secret is not configured")
        if not self.refresh_secret or not self.refresh_secret.strip():
            raise SigningError("Refresh token secret is not configured")
        if self.access_secret == self.refresh_secret:
            raise SigningError("Access and refresh tokens must use different secrets")
        if self.algorithm not in _SUPPORTED_ALGORITHMS:
            raise SigningError(f"Unsupported signing algorithm: {self.algorithm}")
        if self.access_ttl <= timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise SigningError("Token lifetimes must be positive")

    @classmethod
    def from_settings(cls, source: Settings) -> "TokenConfig":
        return cls(
            access_secret=source.ACCESS_TOKEN_SECRET,
            refresh_secret=source.REFRESH_TOKEN_SECRET,
            algorithm=source.ALGORITHM,
            access_ttl=timedelta(minutes=source.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=source.REFRESH_TOKEN_EXPIRE_DAYS),
        )


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


class TokenService:
    """
    Mints and verifies access and refresh tokens.

    Signing is a pure function of (claims, secret, TTL); nothing here touches
    the database. Verification failures come back as ``AuthFailure`` values.
    """

    def __init__(self, config: TokenConfig):
        self._config = config

    @property
    def access_max_age(self) -> int:
        return int(self._config.access_ttl.total_seconds())

    @property
    def refresh_max_age(self) -> int:
        return int(self._config.refresh_ttl.total_seconds())

    def _encode(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = datetime.now(tz=timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "iat": now,
            "exp": now + ttl,
            "jti": uuid.uuid4().hex,
        })
        return jwt.encode(to_encode, secret, algorithm=self._config.algorithm)

    def create_access_token(self, account: Any) -> str:
        """
        Create a short-lived access token carrying the public profile claims.

        Args:
            account: Object exposing id, email, user_name and full_name

        Returns:
            Encoded JWT access token
        """
        claims = {
            "id": account.id,
            "email": account.email,
            "userName": account.user_name,
            "fullName": account.full_name,
        }
        return self._encode(claims, self._config.access_secret, self._config.access_ttl)

    def create_refresh_token(self, account_id: int) -> str:
        """Create a long-lived refresh token that only carries the account id."""
        return self._encode({"id": account_id}, self._config.refresh_secret, self._config.refresh_ttl)

    def issue_pair(self, account: Any) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(account),
            refresh_token=self.create_refresh_token(account.id),
        )

    def _decode(self, token: str, secret: str, kind: AuthErrorKind) -> Union[dict, AuthFailure]:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._config.algorithm],
                options={"require_exp": True, "require_iat": True},
            )
        except ExpiredSignatureError:
            return AuthFailure(kind, "token expired")
        except JWTError as exc:
            return AuthFailure(kind, f"token rejected: {exc}")

        if not isinstance(payload.get("id"), int):
            return AuthFailure(kind, "token has no account id")
        return payload

    def decode_access_token(self, token: str) -> Union[dict, AuthFailure]:
        """Verify signature and expiry of an access token."""
        return self._decode(token, self._config.access_secret, AuthErrorKind.INVALID_TOKEN)

    def decode_refresh_token(self, token: str) -> Union[dict, AuthFailure]:
        """Verify signature and expiry of a refresh token."""
        return self._decode(token, self._config.refresh_secret, AuthErrorKind.INVALID_REFRESH_TOKEN)

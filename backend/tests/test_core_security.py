"""
Tests for password hashing and token signing in app.core.security.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jose import jwt

from app.core.auth_errors import AuthErrorKind, AuthFailure, SigningError
from app.core.security import (
    TokenConfig,
    TokenService,
    get_password_hash,
    verify_password,
)

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


def make_service(**overrides) -> TokenService:
    options = {"access_secret": ACCESS_SECRET, "refresh_secret": REFRESH_SECRET}
    options.update(overrides)
    return TokenService(TokenConfig(**options))


def make_account(**overrides):
    values = {"id": 7, "email": "alice@example.com", "user_name": "alice", "full_name": "alice liddell"}
    values.update(overrides)
    return SimpleNamespace(**values)


class TestPasswordHashing:
    """Test bcrypt hashing helpers."""

    def test_hash_is_not_plaintext(self):
        hashed = get_password_hash("Passw0rd!", rounds=4)

        assert hashed != "Passw0rd!"
        assert hashed.startswith("$2b$04$")

    def test_verify_correct_password(self):
        hashed = get_password_hash("Passw0rd!", rounds=4)
        assert verify_password("Passw0rd!", hashed) is True

    def test_verify_wrong_password(self):
        hashed = get_password_hash("Passw0rd!", rounds=4)
        assert verify_password("passw0rd!", hashed) is False

    def test_each_hash_uses_a_fresh_salt(self):
        """Hashing the same password twice gives different hashes that both verify."""
        first = get_password_hash("Passw0rd!", rounds=4)
        second = get_password_hash("Passw0rd!", rounds=4)

        assert first != second
        assert verify_password("Passw0rd!", first)
        assert verify_password("Passw0rd!", second)

    def test_default_rounds_come_from_settings(self):
        from app.core.config import settings

        hashed = get_password_hash("Passw0rd!")
        assert hashed.startswith(f"$2b${settings.BCRYPT_SALT_ROUNDS:02d}$")

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("Passw0rd!", "not-a-bcrypt-hash") is False

    def test_password_truncated_at_72_bytes(self):
        """bcrypt only sees the first 72 bytes."""
        long_password = "A" * 72
        hashed = get_password_hash(long_password, rounds=4)

        assert verify_password(long_password + "extra", hashed) is True


class TestTokenConfig:
    """Signing misconfiguration is rejected when the config is built."""

    def test_valid_config(self):
        config = TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)
        assert config.algorithm == "HS256"
        assert config.access_ttl == timedelta(minutes=15)
        assert config.refresh_ttl == timedelta(days=7)

    @pytest.mark.parametrize("access,refresh", [("", REFRESH_SECRET), (ACCESS_SECRET, "   ")])
    def test_missing_secret(self, access, refresh):
        with pytest.raises(SigningError):
            TokenConfig(access_secret=access, refresh_secret=refresh)

    def test_shared_secret_rejected(self):
        with pytest.raises(SigningError, match="different secrets"):
            TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=ACCESS_SECRET)

    def test_unsupported_algorithm(self):
        with pytest.raises(SigningError, match="Unsupported"):
            TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET, algorithm="none")

    def test_non_positive_ttl(self):
        with pytest.raises(SigningError):
            TokenConfig(
                access_secret=ACCESS_SECRET,
                refresh_secret=REFRESH_SECRET,
                access_ttl=timedelta(0),
            )

    def test_from_settings(self):
        from app.core.config import Settings

        source = Settings(
            ACCESS_TOKEN_SECRET=ACCESS_SECRET,
            REFRESH_TOKEN_SECRET=REFRESH_SECRET,
            ACCESS_TOKEN_EXPIRE_MINUTES=5,
            REFRESH_TOKEN_EXPIRE_DAYS=2,
        )
        config = TokenConfig.from_settings(source)

        assert config.access_secret == ACCESS_SECRET
        assert config.refresh_secret == REFRESH_SECRET
        assert config.access_ttl == timedelta(minutes=5)
        assert config.refresh_ttl == timedelta(days=2)


class TestTokenService:
    """Test minting and verifying access and refresh tokens."""

    def test_access_token_carries_profile_claims(self):
        service = make_service()
        token = service.create_access_token(make_account())

        payload = service.decode_access_token(token)

        assert payload["id"] == 7
        assert payload["email"] == "alice@example.com"
        assert payload["userName"] == "alice"
        assert payload["fullName"] == "alice liddell"
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_refresh_token_carries_only_id(self):
        service = make_service()
        token = service.create_refresh_token(7)

        payload = service.decode_refresh_token(token)

        assert payload["id"] == 7
        assert "email" not in payload
        assert "userName" not in payload
        assert payload["exp"] - payload["iat"] == 7 * 24 * 3600

    def test_tokens_minted_together_differ(self):
        """Two tokens for the same account in the same second are distinct."""
        service = make_service()

        first = service.create_refresh_token(7)
        second = service.create_refresh_token(7)

        assert first != second

    def test_issue_pair(self):
        service = make_service()
        pair = service.issue_pair(make_account())

        assert service.decode_access_token(pair.access_token)["id"] == 7
        assert service.decode_refresh_token(pair.refresh_token)["id"] == 7

    def test_access_token_is_not_a_refresh_token(self):
        """Tokens signed with one secret never verify under the other."""
        service = make_service()
        pair = service.issue_pair(make_account())

        as_refresh = service.decode_refresh_token(pair.access_token)
        as_access = service.decode_access_token(pair.refresh_token)

        assert isinstance(as_refresh, AuthFailure)
        assert as_refresh.kind == AuthErrorKind.INVALID_REFRESH_TOKEN
        assert isinstance(as_access, AuthFailure)
        assert as_access.kind == AuthErrorKind.INVALID_TOKEN

    def test_expired_access_token(self):
        service = make_service()
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"id": 7, "iat": past - timedelta(minutes=15), "exp": past},
            ACCESS_SECRET,
            algorithm="HS256",
        )

        result = service.decode_access_token(token)

        assert isinstance(result, AuthFailure)
        assert result.kind == AuthErrorKind.INVALID_TOKEN
        assert result.reason == "token expired"

    def test_tampered_token(self):
        service = make_service()
        token = service.create_access_token(make_account())
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])

        result = service.decode_access_token(tampered)

        assert isinstance(result, AuthFailure)
        assert result.kind == AuthErrorKind.INVALID_TOKEN

    def test_garbage_token(self):
        result = make_service().decode_refresh_token("not-a-jwt")

        assert isinstance(result, AuthFailure)
        assert result.kind == AuthErrorKind.INVALID_REFRESH_TOKEN

    def test_token_without_account_id(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "7", "iat": now, "exp": now + timedelta(minutes=5)},
            ACCESS_SECRET,
            algorithm="HS256",
        )

        result = make_service().decode_access_token(token)

        assert isinstance(result, AuthFailure)
        assert result.reason == "token has no account id"

    def test_token_without_expiry(self):
        token = jwt.encode({"id": 7, "iat": datetime.now(timezone.utc)}, ACCESS_SECRET, algorithm="HS256")

        result = make_service().decode_access_token(token)

        assert isinstance(result, AuthFailure)

    def test_max_age_matches_ttl(self):
        service = make_service(access_ttl=timedelta(minutes=10), refresh_ttl=timedelta(days=1))

        assert service.access_max_age == 600
        assert service.refresh_max_age == 86400

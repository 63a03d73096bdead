"""
Credential verification: handle/email + password against the stored bcrypt hash.
"""

import logging
from functools import lru_cache
from typing import Optional, Union

from app.core.auth_errors import AuthErrorKind, AuthFailure
from app.core.config import settings
from app.core.security import get_password_hash, verify_password
from app.models.account import Account
from app.repositories.account_repository import AccountRepository

logger = logging.getLogger("streamhub.auth.credentials")


@lru_cache(maxsize=8)
def _placeholder_hash(rounds: int) -> str:
    # Checked when the account does not exist; same cost factor as real hashes
    return get_password_hash("streamhub-placeholder-password", rounds=rounds)


class CredentialVerifier:
    def __init__(self, accounts: AccountRepository, bcrypt_rounds: Optional[int] = None):
        self._accounts = accounts
        self._rounds = bcrypt_rounds or settings.BCRYPT_SALT_ROUNDS

    async def verify(
        self,
        password: str,
        user_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Union[Account, AuthFailure]:
        """
        Look up the account and check the password.

        Returns the account on success. An unknown account and a wrong
        password both return the same INVALID_CREDENTIALS failure; only the
        internal reason differs.
        """
        if not password or not (user_name or email):
            return AuthFailure(AuthErrorKind.INVALID_CREDENTIALS, "missing identity or password")

        account = await self._accounts.find_by_lookup(user_name=user_name, email=email)
        if account is None:
            verify_password(password, _placeholder_hash(self._rounds))
            return AuthFailure(AuthErrorKind.INVALID_CREDENTIALS, "unknown account")

        if not verify_password(password, account.hashed_password):
            return AuthFailure(AuthErrorKind.INVALID_CREDENTIALS, "password mismatch")

        return account

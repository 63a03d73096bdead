"""
Login, refresh, logout and access-token resolution.

Each operation returns either its result or an ``AuthFailure``; the API layer
decides how a failure is reported.
"""

import logging
from typing import NamedTuple, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth_errors import AuthErrorKind, AuthFailure
from app.core.security import TokenPair, TokenService, verify_password
from app.models.account import Account
from app.repositories.account_repository import AccountRepository
from app.services.auth.credentials import CredentialVerifier
from app.services.auth.session_store import SessionStore

logger = logging.getLogger("streamhub.auth")


class AuthSession(NamedTuple):
    account: Account
    tokens: TokenPair


class AuthService:
    def __init__(
        self,
        db: AsyncSession,
        token_service: TokenService,
        bcrypt_rounds: Optional[int] = None,
    ):
        self.accounts = AccountRepository(db, bcrypt_rounds=bcrypt_rounds)
        self.credentials = CredentialVerifier(self.accounts, bcrypt_rounds=bcrypt_rounds)
        self.sessions = SessionStore(self.accounts)
        self.tokens = token_service

    async def login(
        self,
        password: str,
        user_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Union[AuthSession, AuthFailure]:
        """
        Verify credentials, mint a token pair and store the refresh token.

        Storing the new refresh token overwrites any earlier one, so only the
        latest login keeps a refreshable session.
        """
        verified = await self.credentials.verify(password, user_name=user_name, email=email)
        if isinstance(verified, AuthFailure):
            logger.info("Login rejected: %s", verified)
            return verified

        tokens = self.tokens.issue_pair(verified)
        await self.sessions.persist(verified.id, tokens.refresh_token)
        logger.info("Account %s logged in", verified.id)
        return AuthSession(account=verified, tokens=tokens)

    async def refresh(self, presented: Optional[str]) -> Union[AuthSession, AuthFailure]:
        """
        Rotate a refresh token.

        The presented token must verify against the refresh secret and must be
        the exact value in the account's session slot. The slot is swapped
        with a conditional update, so a superseded or concurrently used token
        is rejected.
        """
        if not presented:
            return self._reject(AuthFailure(AuthErrorKind.MISSING_REFRESH_TOKEN))

        payload = self.tokens.decode_refresh_token(presented)
        if isinstance(payload, AuthFailure):
            return self._reject(payload)

        account_id = payload["id"]
        account = await self.accounts.find_by_id(account_id)
        if account is None:
            return self._reject(AuthFailure(AuthErrorKind.INVALID_REFRESH_TOKEN, "account no longer exists"))

        if not await self.sessions.validate(account_id, presented):
            return self._reject(
                AuthFailure(AuthErrorKind.INVALID_REFRESH_TOKEN, "token does not match session slot")
            )

        tokens = self.tokens.issue_pair(account)
        if not await self.sessions.rotate(account_id, presented, tokens.refresh_token):
            return self._reject(
                AuthFailure(AuthErrorKind.INVALID_REFRESH_TOKEN, "session slot changed during rotation")
            )

        logger.info("Rotated refresh token for account %s", account_id)
        return AuthSession(account=account, tokens=tokens)

    async def logout(self, account_id: int) -> None:
        """Clear the session slot. Clearing an empty slot is not an error."""
        await self.sessions.clear(account_id)
        logger.info("Account %s logged out", account_id)

    async def authenticate(self, access_token: Optional[str]) -> Union[Account, AuthFailure]:
        """Resolve a bearer access token to its account. Does not refresh."""
        if not access_token:
            return AuthFailure(AuthErrorKind.MISSING_TOKEN)

        payload = self.tokens.decode_access_token(access_token)
        if isinstance(payload, AuthFailure):
            return payload

        account = await self.accounts.find_by_id(payload["id"])
        if account is None:
            return AuthFailure(AuthErrorKind.INVALID_TOKEN, "account no longer exists")
        return account

    async def change_password(
        self,
        account: Account,
        old_password: str,
        new_password: str,
    ) -> Optional[AuthFailure]:
        """Re-hash and store a new password after checking the current one."""
        if not verify_password(old_password, account.hashed_password):
            failure = AuthFailure(AuthErrorKind.INVALID_CREDENTIALS, "old password mismatch")
            logger.info("Password change rejected for account %s: %s", account.id, failure)
            return failure

        await self.accounts.update_password(account, new_password)
        logger.info("Password changed for account %s", account.id)
        return None

    @staticmethod
    def _reject(failure: AuthFailure) -> AuthFailure:
        logger.warning("Refresh rejected: %s", failure)
        return failure

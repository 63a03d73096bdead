"""
Session slot: the single refresh token currently honored per account.
"""

import secrets
from typing import Optional

from app.models.account import Account
from app.repositories.account_repository import AccountRepository


def tokens_match(stored: Optional[str], presented: Optional[str]) -> bool:
    """Exact comparison of the stored slot value against a presented token."""
    if not stored or not presented:
        return False
    return secrets.compare_digest(stored.encode("utf-8"), presented.encode("utf-8"))


class SessionStore:
    """
    Reads and writes ``Account.refresh_token``.

    ``validate`` is pure state comparison; signature and expiry checks belong
    to ``TokenService``.
    """

    def __init__(self, accounts: AccountRepository):
        self._accounts = accounts

    async def persist(self, account_id: int, refresh_token: str) -> None:
        await self._accounts.set_refresh_token(account_id, refresh_token)

    async def validate(self, account_id: int, presented_token: str) -> bool:
        account: Optional[Account] = await self._accounts.find_by_id(account_id)
        if account is None:
            return False
        return tokens_match(account.refresh_token, presented_token)

    async def rotate(self, account_id: int, presented_token: str, new_token: str) -> bool:
        """
        Atomically replace ``presented_token`` with ``new_token``.

        Returns False if the slot no longer holds ``presented_token``, which
        is what the losing side of two concurrent refreshes sees.
        """
        return await self._accounts.swap_refresh_token(account_id, presented_token, new_token)

    async def clear(self, account_id: int) -> None:
        await self._accounts.set_refresh_token(account_id, None)

"""
Account persistence.

Every write that touches the password goes through ``create`` or
``update_password``, both of which hash before the row is written.
"""

from typing import Optional

from sqlalchemy import select, update, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_password_hash
from app.models.account import Account


def normalize_identity(value: str) -> str:
    """Case-normalize an email for storage and lookup."""
    return value.strip().lower()


def normalize_user_name(value: str) -> str:
    """Case-normalize a handle and drop its optional leading @."""
    return normalize_identity(value).lstrip("@")


class AccountRepository:
    def __init__(self, db: AsyncSession, bcrypt_rounds: Optional[int] = None) -> None:
        self._db = db
        self._rounds = bcrypt_rounds

    async def _commit(self) -> None:
        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            raise

    async def find_by_id(self, account_id: int) -> Optional[Account]:
        return await self._db.get(Account, account_id)

    async def find_by_user_name(self, user_name: str) -> Optional[Account]:
        result = await self._db.execute(
            select(Account).where(Account.user_name == normalize_user_name(user_name))
        )
        return result.scalar_one_or_none()

    async def find_by_lookup(
        self,
        user_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[Account]:
        """
        Find an account by handle and/or email.

        When both are supplied, both must belong to the same account.
        """
        user_name = normalize_user_name(user_name) if user_name else None
        email = normalize_identity(email) if email else None
        conditions = []
        if user_name:
            conditions.append(Account.user_name == user_name)
        if email:
            conditions.append(Account.email == email)
        if not conditions:
            return None

        result = await self._db.execute(select(Account).where(and_(*conditions)))
        return result.scalar_one_or_none()

    async def exists_with(
        self,
        user_name: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> bool:
        """True if another account already uses the handle or the email."""
        user_name = normalize_user_name(user_name) if user_name else None
        email = normalize_identity(email) if email else None
        conditions = []
        if user_name:
            conditions.append(Account.user_name == user_name)
        if email:
            conditions.append(Account.email == email)
        if not conditions:
            return False

        query = select(Account.id).where(or_(*conditions))
        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)
        result = await self._db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def create(self, *, user_name: str, email: str, full_name: str, password: str) -> Account:
        hashed_password = get_password_hash(password, rounds=self._rounds)
        account = Account(
            user_name=normalize_user_name(user_name),
            email=normalize_identity(email),
            full_name=full_name.strip().lower(),
            hashed_password=hashed_password,
        )
        self._db.add(account)
        await self._commit()
        await self._db.refresh(account)
        return account

    async def update_password(self, account: Account, new_password: str) -> None:
        account.hashed_password = get_password_hash(new_password, rounds=self._rounds)
        await self._db.commit()

    async def update_profile(
        self,
        account: Account,
        *,
        full_name: Optional[str] = None,
        user_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Account:
        if full_name:
            account.full_name = full_name.strip().lower()
        if user_name:
            account.user_name = normalize_user_name(user_name)
        if email:
            account.email = normalize_identity(email)
        await self._commit()
        await self._db.refresh(account)
        return account

    async def set_refresh_token(self, account_id: int, token: Optional[str]) -> None:
        """Overwrite (or clear, with None) the account's session slot."""
        await self._db.execute(
            update(Account).where(Account.id == account_id).values(refresh_token=token)
        )
        await self._db.commit()

    async def swap_refresh_token(self, account_id: int, expected: str, new: str) -> bool:
        """
        Replace the stored refresh token only if it still equals ``expected``.

        Single conditional UPDATE, so two concurrent rotations of the same
        token cannot both succeed.
        """
        result = await self._db.execute(
            update(Account)
            .where(Account.id == account_id, Account.refresh_token == expected)
            .values(refresh_token=new)
        )
        await self._db.commit()
        return (result.rowcount or 0) == 1

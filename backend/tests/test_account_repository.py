"""
Tests for AccountRepository.
"""
import pytest
from sqlalchemy.exc import IntegrityError

from app.core.security import verify_password
from app.repositories.account_repository import (
    AccountRepository,
    normalize_identity,
    normalize_user_name,
)

from utils.auth_helpers import DEFAULT_PASSWORD


@pytest.fixture
def repo(db_session):
    return AccountRepository(db_session, bcrypt_rounds=4)


def test_normalize_identity():
    assert normalize_identity("  Alice@Example.COM ") == "alice@example.com"


def test_normalize_user_name_drops_leading_at():
    assert normalize_user_name(" @Alice ") == "alice"
    assert normalize_user_name("alice") == "alice"


class TestAccountRepository:

    @pytest.mark.asyncio
    async def test_create_hashes_and_normalizes(self, repo):
        account = await repo.create(
            user_name="Alice",
            email="Alice@Example.com",
            full_name="  Alice Liddell ",
            password=DEFAULT_PASSWORD,
        )

        assert account.id is not None
        assert account.user_name == "alice"
        assert account.email == "alice@example.com"
        assert account.full_name == "alice liddell"
        assert account.hashed_password != DEFAULT_PASSWORD
        assert verify_password(DEFAULT_PASSWORD, account.hashed_password)
        assert account.refresh_token is None
        assert account.created_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_create_raises_and_rolls_back(self, repo, account_factory):
        await account_factory()

        with pytest.raises(IntegrityError):
            await repo.create(
                user_name="alice",
                email="other@example.com",
                full_name="Other Alice",
                password=DEFAULT_PASSWORD,
            )

        # Session is still usable after the rollback
        assert await repo.find_by_user_name("alice") is not None

    @pytest.mark.asyncio
    async def test_find_by_lookup(self, repo, account_factory):
        account = await account_factory()

        assert (await repo.find_by_lookup(user_name="ALICE")).id == account.id
        assert (await repo.find_by_lookup(email="alice@example.com")).id == account.id
        assert await repo.find_by_lookup() is None
        assert await repo.find_by_lookup(user_name="bob") is None

    @pytest.mark.asyncio
    async def test_exists_with(self, repo, account_factory):
        account = await account_factory()

        assert await repo.exists_with(user_name="alice") is True
        assert await repo.exists_with(email="ALICE@example.com") is True
        assert await repo.exists_with(user_name="bob", email="alice@example.com") is True
        assert await repo.exists_with(user_name="bob", email="bob@example.com") is False
        assert await repo.exists_with(user_name="alice", exclude_id=account.id) is False
        assert await repo.exists_with() is False

    @pytest.mark.asyncio
    async def test_update_password(self, repo, account_factory):
        await account_factory()
        account = await repo.find_by_user_name("alice")

        await repo.update_password(account, "N3wPassword!")

        reloaded = await repo.find_by_id(account.id)
        assert verify_password("N3wPassword!", reloaded.hashed_password)
        assert not verify_password(DEFAULT_PASSWORD, reloaded.hashed_password)

    @pytest.mark.asyncio
    async def test_update_profile(self, repo, account_factory):
        await account_factory()
        account = await repo.find_by_user_name("alice")

        updated = await repo.update_profile(account, user_name="Wonder", email="wonder@example.com")

        assert updated.user_name == "wonder"
        assert updated.email == "wonder@example.com"
        assert updated.full_name == "alice liddell"

    @pytest.mark.asyncio
    async def test_swap_refresh_token(self, repo, account_factory):
        account = await account_factory()
        await repo.set_refresh_token(account.id, "one")

        assert await repo.swap_refresh_token(account.id, "one", "two") is True
        assert await repo.swap_refresh_token(account.id, "one", "three") is False
        assert (await repo.find_by_id(account.id)).refresh_token == "two"

    @pytest.mark.asyncio
    async def test_at_prefixed_handle_is_the_same_account(self, repo, account_factory):
        account = await account_factory(user_name="@Alice")

        assert account.user_name == "alice"
        assert (await repo.find_by_user_name("alice")).id == account.id
        assert (await repo.find_by_user_name("@alice")).id == account.id
        assert await repo.exists_with(user_name="alice") is True
        assert await repo.exists_with(user_name="@ALICE") is True

    @pytest.mark.asyncio
    async def test_blank_user_name_falls_back_to_email(self, repo, account_factory):
        account = await account_factory()

        assert (await repo.find_by_lookup(user_name="   ", email="alice@example.com")).id == account.id
        assert await repo.exists_with(user_name="   ") is False

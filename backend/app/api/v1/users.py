from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from sqlalchemy.exc import IntegrityError

from app.api.deps import (
    REFRESH_TOKEN_COOKIE,
    get_auth_service,
    get_current_account,
    get_token_service,
    raise_for_failure,
)
from app.api.helpers import clear_auth_cookies, set_auth_cookies
from app.core.auth_errors import AuthErrorKind, AuthFailure
from app.core.security import TokenService
from app.models.account import Account
from app.schemas.account import (
    AccountCreate,
    AccountEnvelope,
    AccountOut,
    AccountUpdate,
    MessageResponse,
    PasswordChange,
)
from app.schemas.token import LoginRequest
from app.services.auth import AuthService

router = APIRouter()

_CONFLICT_DETAIL = "An account with these details already exists"


def _envelope(account: Account, message: str) -> AccountEnvelope:
    return AccountEnvelope(user=AccountOut.model_validate(account), message=message)


@router.post("/register", response_model=AccountEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    account_in: AccountCreate,
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    """
    Register a new account. The password is hashed before the row is written.
    """
    if await auth.accounts.exists_with(user_name=account_in.user_name, email=account_in.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_CONFLICT_DETAIL)

    try:
        account = await auth.accounts.create(
            user_name=account_in.user_name,
            email=account_in.email,
            full_name=account_in.full_name,
            password=account_in.password,
        )
    except IntegrityError:
        # Lost a race with a concurrent registration
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_CONFLICT_DETAIL)

    return _envelope(account, "Account registered successfully")


@router.post("/login", response_model=AccountEnvelope)
async def login(
    login_data: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    token_service: TokenService = Depends(get_token_service),
) -> Any:
    """
    Log in with userName and/or email plus password.

    Sets the accessToken and refreshToken cookies; the body only carries the
    public profile. Unknown account and wrong password give the same 401.
    """
    result = await auth.login(
        login_data.password,
        user_name=login_data.user_name,
        email=login_data.email,
    )
    if isinstance(result, AuthFailure):
        raise_for_failure(result)

    set_auth_cookies(response, result.tokens, token_service)
    return _envelope(result.account, "Logged in successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    current_account: Account = Depends(get_current_account),
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    """
    Clear the session slot and expire both cookies.

    An already-issued access token stays valid until it expires.
    """
    await auth.logout(current_account.id)
    clear_auth_cookies(response)
    return MessageResponse(message="Logged out successfully")


@router.post("/token", response_model=AccountEnvelope)
async def refresh_tokens(
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    token_service: TokenService = Depends(get_token_service),
) -> Any:
    """
    Exchange the refreshToken cookie for a new token pair (rotation).

    The presented refresh token is single-use: once rotated, replaying it
    returns 401 and the client has to log in again.
    """
    result = await auth.refresh(request.cookies.get(REFRESH_TOKEN_COOKIE))
    if isinstance(result, AuthFailure):
        raise_for_failure(result)

    set_auth_cookies(response, result.tokens, token_service)
    return _envelope(result.account, "Tokens refreshed successfully")


@router.get("/profile", response_model=AccountEnvelope)
async def read_profile(
    current_account: Account = Depends(get_current_account),
) -> Any:
    return _envelope(current_account, "Profile fetched successfully")


@router.patch("/profile", response_model=AccountEnvelope)
async def update_profile(
    changes: AccountUpdate,
    current_account: Account = Depends(get_current_account),
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    """
    Update fullName, userName and/or email of the current account.
    """
    if await auth.accounts.exists_with(
        user_name=changes.user_name,
        email=changes.email,
        exclude_id=current_account.id,
    ):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_CONFLICT_DETAIL)

    try:
        account = await auth.accounts.update_profile(
            current_account,
            full_name=changes.full_name,
            user_name=changes.user_name,
            email=changes.email,
        )
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_CONFLICT_DETAIL)

    return _envelope(account, "Profile updated successfully")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: PasswordChange,
    current_account: Account = Depends(get_current_account),
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    failure = await auth.change_password(current_account, payload.old_password, payload.new_password)
    if failure is not None:
        raise_for_failure(failure)
    return MessageResponse(message="Password changed successfully")


@router.get("/channel/{user_name}", response_model=AccountEnvelope)
async def read_channel(
    user_name: str,
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    """
    Public profile of a channel, looked up by handle.
    """
    account = await auth.accounts.find_by_user_name(user_name)
    if account is None:
        raise_for_failure(AuthFailure(AuthErrorKind.ACCOUNT_NOT_FOUND, f"no channel {user_name!r}"))
    return _envelope(account, "Channel fetched successfully")

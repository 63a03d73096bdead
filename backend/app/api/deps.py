import logging
from typing import AsyncGenerator, NoReturn, Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth_errors import AuthErrorKind, AuthFailure
from app.core.config import settings
from app.core.security import TokenService
from app.db.session import AsyncSessionLocal
from app.models.account import Account
from app.services.auth import AuthService

logger = logging.getLogger("streamhub.deps")

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

# Allow graceful handling when Authorization header is absent so we can use cookies
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/users/login", auto_error=False)

_UNAUTHORIZED_DETAIL = "Not authenticated"

# Client-facing mapping for every auth failure kind. Credential and token
# failures share one status and a generic message.
_FAILURE_RESPONSES: dict[AuthErrorKind, tuple[int, str]] = {
    AuthErrorKind.INVALID_CREDENTIALS: (status.HTTP_401_UNAUTHORIZED, "Invalid credentials"),
    AuthErrorKind.MISSING_TOKEN: (status.HTTP_401_UNAUTHORIZED, _UNAUTHORIZED_DETAIL),
    AuthErrorKind.INVALID_TOKEN: (status.HTTP_401_UNAUTHORIZED, _UNAUTHORIZED_DETAIL),
    AuthErrorKind.MISSING_REFRESH_TOKEN: (status.HTTP_401_UNAUTHORIZED, _UNAUTHORIZED_DETAIL),
    AuthErrorKind.INVALID_REFRESH_TOKEN: (status.HTTP_401_UNAUTHORIZED, _UNAUTHORIZED_DETAIL),
    AuthErrorKind.ACCOUNT_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Account not found"),
}


def failure_exception(failure: AuthFailure) -> HTTPException:
    """
    Translate an auth failure into the HTTP error the client sees.

    The failure kind and reason are logged; neither reaches the response.
    """
    status_code, detail = _FAILURE_RESPONSES[failure.kind]
    logger.info("Auth failure mapped to %s: %s", status_code, failure)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def raise_for_failure(failure: AuthFailure) -> NoReturn:
    raise failure_exception(failure)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


def get_token_service(request: Request) -> TokenService:
    """The TokenService built once at startup (see app.main)."""
    return request.app.state.token_service


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(db, token_service, bcrypt_rounds=settings.BCRYPT_SALT_ROUNDS)


def extract_access_token(request: Request, header_token: Optional[str]) -> Optional[str]:
    """
    Pick the access token for this request.

    The ``accessToken`` cookie wins over an ``Authorization: Bearer`` header.
    """
    cookie_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie_token:
        # Support "Bearer <token>" value stored in cookie if present
        if cookie_token.lower().startswith("bearer "):
            parts = cookie_token.split(" ", 1)
            cookie_token = parts[1].strip() or None
        if cookie_token:
            return cookie_token
    return header_token or None


async def get_current_account(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Account:
    """
    Gate for protected routes.

    Fails closed with 401 when the token is missing, badly signed or
    expired; never refreshes. On success the account is also attached to
    ``request.state.account``.
    """
    access_token = extract_access_token(request, token)
    result = await auth.authenticate(access_token)
    if isinstance(result, AuthFailure):
        raise_for_failure(result)

    request.state.account = result
    return result

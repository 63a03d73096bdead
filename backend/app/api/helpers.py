"""
Common API Helper Functions

Cookie handling shared by the login, refresh and logout endpoints.
"""

from fastapi import Response

from app.api.deps import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from app.core.config import settings
from app.core.security import TokenPair, TokenService


def set_auth_cookies(response: Response, tokens: TokenPair, token_service: TokenService) -> None:
    """
    Deliver both tokens as HTTP-only cookies.

    Args:
        response: Outgoing response
        tokens: Freshly issued access/refresh pair
        token_service: Source of each cookie's Max-Age
    """
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=tokens.access_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        max_age=token_service.access_max_age,
        path="/",
    )
    response.set_cookie(
        key=REFRESH_TOKEN_COOKIE,
        value=tokens.refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        max_age=token_service.refresh_max_age,
        path="/",
    )


def clear_auth_cookies(response: Response) -> None:
    """Tell the client to drop both token cookies immediately."""
    for key in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            key,
            path="/",
            secure=settings.COOKIE_SECURE,
            httponly=True,
            samesite=settings.COOKIE_SAMESITE,
        )

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from app.core.config import settings

FULL_NAME_PATTERN = re.compile(r"^[A-Za-z\s]{3,30}$")
USER_NAME_PATTERN = re.compile(r"^@?[A-Za-z0-9]{2,19}$")
EMAIL_PATTERN = re.compile(r"^[\w.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
MAX_EMAIL_LENGTH = 254
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,30}$"
)


def _check(pattern: re.Pattern, value: str, message: str) -> str:
    value = value.strip()
    if not pattern.match(value):
        raise ValueError(message)
    return value


def validate_full_name(value: str) -> str:
    return _check(FULL_NAME_PATTERN, value, "Full name must be 3-30 letters or spaces")


def validate_user_name(value: str) -> str:
    return _check(
        USER_NAME_PATTERN,
        value,
        "User name must be 2-19 letters or digits, optionally prefixed with @",
    )


def validate_email(value: str) -> str:
    if len(value.strip()) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email must be at most {MAX_EMAIL_LENGTH} characters")
    return _check(EMAIL_PATTERN, value, "Invalid email")


def validate_password(value: str) -> str:
    if len(value) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must be 8-30 characters and contain at least one uppercase letter, "
            "one lowercase letter, one number, and one special character (@$!%*?&)"
        )
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AccountCreate(CamelModel):
    full_name: str
    user_name: str
    email: str
    password: str

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, value: str) -> str:
        return validate_full_name(value)

    @field_validator("user_name")
    @classmethod
    def check_user_name(cls, value: str) -> str:
        return validate_user_name(value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password(value)


class AccountUpdate(CamelModel):
    full_name: Optional[str] = None
    user_name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, value: Optional[str]) -> Optional[str]:
        return validate_full_name(value) if value is not None else None

    @field_validator("user_name")
    @classmethod
    def check_user_name(cls, value: Optional[str]) -> Optional[str]:
        return validate_user_name(value) if value is not None else None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return validate_email(value) if value is not None else None


class PasswordChange(CamelModel):
    old_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value: str) -> str:
        return validate_password(value)


class AccountOut(CamelModel):
    """Public profile. Never carries the password hash or refresh token."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    user_name: str
    email: str
    full_name: str
    created_at: Optional[datetime] = None


class AccountEnvelope(BaseModel):
    user: AccountOut
    message: str


class MessageResponse(BaseModel):
    message: str

from typing import Optional

from pydantic import field_validator, model_validator

from app.schemas.account import CamelModel


class LoginRequest(CamelModel):
    user_name: Optional[str] = None
    email: Optional[str] = None
    password: str

    @field_validator("user_name", "email", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        # A blank identifier counts as not supplied
        if isinstance(value, str):
            return value.strip() or None
        return value

    @model_validator(mode="after")
    def require_identity(self) -> "LoginRequest":
        if not self.user_name and not self.email:
            raise ValueError("userName or email is required")
        if not self.password:
            raise ValueError("password is required")
        return self

from typing import List, Optional
from urllib.parse import urlsplit

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_ACCESS_TOKEN_SECRET = "dev-access-token-secret-change-me-min-32-chars"
DEV_REFRESH_TOKEN_SECRET = "dev-refresh-token-secret-change-me-min-32-chars"
MIN_SECRET_LENGTH = 32

# Values that are fine on a laptop and refused in production
_WEAK_SECRETS = frozenset({DEV_ACCESS_TOKEN_SECRET, DEV_REFRESH_TOKEN_SECRET, "changeme", "secret"})
_WEAK_DB_PASSWORDS = frozenset({"postgres", "password", "changeme"})
_LOCAL_ORIGINS = frozenset({
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
})


def _database_password(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        return urlsplit(url).password
    except ValueError:
        return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_parse_delimiter=",", extra="ignore")

    PROJECT_NAME: str = "StreamHub API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # JSON array or comma-separated list; see split_origins
    ALLOWED_ORIGINS: List[str] | str = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
        validation_alias=AliasChoices("ALLOWED_ORIGINS", "CORS_ORIGIN"),
    )

    # Database. DATABASE_URL wins; otherwise assembled from POSTGRES_*
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "SQLALCHEMY_DATABASE_URI"),
    )
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_SERVER: str = Field(
        default="db",
        validation_alias=AliasChoices("POSTGRES_SERVER", "POSTGRES_HOST"),
    )
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "streamhub"
    DB_POOL_SIZE: int = Field(default=10, description="Persistent connections (ignored for SQLite)")
    DB_MAX_OVERFLOW: int = Field(default=20, description="Burst connections (ignored for SQLite)")
    SQLALCHEMY_ECHO: bool = False

    # Token signing. Access and refresh tokens never share a secret.
    ACCESS_TOKEN_SECRET: str = Field(
        default=DEV_ACCESS_TOKEN_SECRET,
        validation_alias=AliasChoices("ACCESS_TOKEN_SECRET", "JWT_SECRET"),
    )
    REFRESH_TOKEN_SECRET: str = DEV_REFRESH_TOKEN_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Passwords
    BCRYPT_SALT_ROUNDS: int = Field(default=10, ge=4, le=31)
    MIN_PASSWORD_LENGTH: int = Field(default=8, ge=8, le=30)

    # Auth cookies
    COOKIE_SECURE: bool = True
    COOKIE_SAMESITE: str = "strict"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def model_post_init(self, __context):
        """
        Fill in DATABASE_URL, then refuse to start a production process that
        still carries development values. All problems are reported at once.
        """
        if not self.DATABASE_URL:
            self.DATABASE_URL = (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

        if not self.is_production:
            return

        problems = self._production_problems()
        if problems:
            raise ValueError(
                "Refusing to start with insecure production settings:\n"
                + "\n".join(f"  - {p}" for p in problems)
            )

    def _production_problems(self) -> list[str]:
        problems = []

        for name in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET"):
            value = getattr(self, name)
            if value in _WEAK_SECRETS or len(value) < MIN_SECRET_LENGTH:
                problems.append(
                    f"{name} is insecure; use at least {MIN_SECRET_LENGTH} random characters "
                    "(e.g. `openssl rand -base64 48`)."
                )

        if _database_password(self.DATABASE_URL) in _WEAK_DB_PASSWORDS:
            problems.append("DATABASE_URL contains an insecure password.")

        if not self.ALLOWED_ORIGINS or set(self.ALLOWED_ORIGINS) <= _LOCAL_ORIGINS:
            problems.append("ALLOWED_ORIGINS must list the real frontend origin(s), not localhost.")

        if not self.COOKIE_SECURE:
            problems.append("COOKIE_SECURE must be true in production.")

        if self.DEBUG:
            problems.append("DEBUG must be False in production.")

        return problems

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("COOKIE_SAMESITE")
    @classmethod
    def check_samesite(cls, value: str) -> str:
        value = value.lower()
        if value not in ("strict", "lax", "none"):
            raise ValueError("COOKIE_SAMESITE must be one of strict, lax, none")
        return value


settings = Settings()

# Services Package
from app.services.auth import AuthService, AuthSession, CredentialVerifier, SessionStore  # noqa: F401

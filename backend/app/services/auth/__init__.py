from app.services.auth.credentials import CredentialVerifier
from app.services.auth.session_store import SessionStore
from app.services.auth.auth_service import AuthService, AuthSession

__all__ = ["AuthService", "AuthSession", "CredentialVerifier", "SessionStore"]

"""
Client-side session library.

Holds the authenticated user and bearer token, persists the token between
runs, talks to the auth endpoints and gates verification-code submission.
"""

from .gateway import AuthGateway, GatewayResult
from .session_store import AuthError, Session, SessionStatus, SessionStore, open_session
from .single_flight import SingleFlight
from .token_storage import FileTokenStorage, MemoryTokenStorage, TokenStorage
from .verification import CODE_LENGTH, Notice, VerificationFlow, is_valid_code

__all__ = [
    "AuthGateway",
    "GatewayResult",
    "AuthError",
    "Session",
    "SessionStatus",
    "SessionStore",
    "open_session",
    "SingleFlight",
    "FileTokenStorage",
    "MemoryTokenStorage",
    "TokenStorage",
    "CODE_LENGTH",
    "Notice",
    "VerificationFlow",
    "is_valid_code",
]

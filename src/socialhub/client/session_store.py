"""
Client-side session store.

The store owns the session record (current user, bearer token, loading flag
and last error), resolves it once at startup from the persisted token, and
updates it through login, register, email-verified signup, logout and local
profile edits.

Failure policy per operation:

- ``check_auth``: failures are logged and swallowed; the persisted token is
  discarded and the session ends anonymous.
- ``login`` / ``register`` / ``signup`` / ``verify_email``: failures set
  ``error`` and raise ``AuthError``.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Tuple

from ..config import get_config, AppConfig
from .gateway import AuthGateway, GatewayResult
from .single_flight import SingleFlight
from .token_storage import FileTokenStorage, TokenStorage

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Login failed"
REGISTRATION_FAILED_MESSAGE = "Registration failed"
SIGNUP_FAILED_MESSAGE = "Signup failed"
VERIFICATION_FAILED_MESSAGE = "Verification failed"


class AuthError(Exception):
    """Raised when login, registration or signup fails."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        transport_error: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.transport_error = transport_error


def _payload_key(payload: Mapping[str, Any]) -> Tuple[Tuple[str, str], ...]:
    return tuple(sorted((str(key), repr(value)) for key, value in payload.items()))


class SessionStatus(str, Enum):
    """Top-level session status, derived from the session record."""
    UNRESOLVED = "unresolved"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Session:
    """Immutable view of the session record."""
    user: Optional[Dict[str, Any]]
    token: Optional[str]
    loading: bool
    error: Optional[str]

    @property
    def status(self) -> SessionStatus:
        if self.loading:
            return SessionStatus.UNRESOLVED
        if self.user is not None:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.ANONYMOUS


class SessionStore:
    """
    Owner of the client session.

    Args:
        gateway: HTTP transport for the auth endpoints
        storage: Persistent slot for the bearer token
    """

    def __init__(self, gateway: AuthGateway, storage: TokenStorage):
        self.gateway = gateway
        self.storage = storage
        self._user: Optional[Dict[str, Any]] = None
        self._token: Optional[str] = None
        self._loading = True
        self._error: Optional[str] = None
        self._resolved = asyncio.Event()
        self._flights = SingleFlight()

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._user

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def status(self) -> SessionStatus:
        return self.snapshot().status

    def snapshot(self) -> Session:
        return Session(
            user=dict(self._user) if self._user is not None else None,
            token=self._token,
            loading=self._loading,
            error=self._error,
        )

    def _set_authenticated(self, token: str, user: Dict[str, Any]) -> None:
        self._token = token
        self._user = dict(user)

    def _clear(self) -> None:
        self._token = None
        self._user = None

    def _discard(self, token: Optional[str]) -> None:
        # A login that finished during the check owns the slot now.
        if token and self.storage.get_token() == token:
            self.storage.remove_token()
        if self._token in (None, token):
            self._clear()

    async def check_auth(self) -> None:
        """
        Resolve the session from the persisted token, once.

        Never raises for authentication or transport failures; ``loading`` is
        False when this returns, whatever the outcome.
        """
        if self._resolved.is_set():
            return
        await self._flights.do("check_auth", self._check_auth)

    async def _check_auth(self) -> None:
        token = None
        try:
            token = self.storage.get_token()
            if not token:
                logger.debug("No persisted token, session is anonymous")
                return

            result = await self.gateway.me(token)
            if result.ok and isinstance(result.data.get("user"), dict):
                if self._token is None:
                    self._set_authenticated(token, result.data["user"])
                    logger.info("Session restored from persisted token")
            else:
                logger.warning(f"Auth check failed: {result.description}")
                self._discard(token)
        except Exception as e:
            logger.error(f"Auth check failed: {e}")
            self._discard(token)
        finally:
            self._loading = False
            self._resolved.set()

    async def wait_until_resolved(self) -> Session:
        """Wait for the first ``check_auth`` to finish and return the session."""
        await self._resolved.wait()
        return self.snapshot()

    def _accept(self, result: GatewayResult, fallback: str) -> Dict[str, Any]:
        if result.ok and isinstance(result.data.get("user"), dict) and isinstance(result.data.get("token"), str):
            token = result.data["token"]
            self.storage.set_token(token)
            self._set_authenticated(token, result.data["user"])
            return dict(result.data["user"])

        self._error = result.server_message or fallback
        logger.warning(f"{fallback}: {result.description}")
        raise AuthError(self._error, status=result.status, transport_error=result.transport_error)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Log in and return the user.

        Concurrent calls with the same credentials share one request.

        Raises:
            AuthError: If the server rejects the credentials or is unreachable.
        """
        async def attempt() -> Dict[str, Any]:
            self._error = None
            result = await self.gateway.login(email, password)
            return self._accept(result, LOGIN_FAILED_MESSAGE)

        return await self._flights.do(("login", email.strip().lower(), password), attempt)

    async def register(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Register, log in, and return the new user.

        Raises:
            AuthError: If registration is rejected or the server is unreachable.
        """
        async def attempt() -> Dict[str, Any]:
            self._error = None
            result = await self.gateway.register(dict(payload))
            return self._accept(result, REGISTRATION_FAILED_MESSAGE)

        return await self._flights.do(("register", _payload_key(payload)), attempt)

    async def signup(self, payload: Mapping[str, Any]) -> str:
        """
        Start an email-verified signup; the server mails a verification code.

        The session is unchanged until ``verify_email`` succeeds.

        Returns:
            The server's confirmation message.

        Raises:
            AuthError: If the signup is rejected or the server is unreachable.
        """
        async def attempt() -> str:
            self._error = None
            result = await self.gateway.signup(dict(payload))
            if result.ok:
                return result.data["message"]
            self._error = result.server_message or SIGNUP_FAILED_MESSAGE
            logger.warning(f"{SIGNUP_FAILED_MESSAGE}: {result.description}")
            raise AuthError(self._error, status=result.status, transport_error=result.transport_error)

        return await self._flights.do(("signup", _payload_key(payload)), attempt)

    async def verify_email(self, email: str, code: str) -> Dict[str, Any]:
        """
        Confirm a pending signup with its code, log in, and return the user.

        Raises:
            AuthError: If the code is wrong or expired or the server is unreachable.
        """
        async def attempt() -> Dict[str, Any]:
            self._error = None
            result = await self.gateway.verify_email(email, code)
            return self._accept(result, VERIFICATION_FAILED_MESSAGE)

        return await self._flights.do(("verify_email", email.strip().lower(), code), attempt)

    def logout(self) -> None:
        """Forget the persisted token and the current user."""
        self.storage.remove_token()
        self._clear()
        logger.info("Logged out")

    def update_user(self, partial: Mapping[str, Any]) -> None:
        """
        Shallow-merge ``partial`` onto the current user.

        Does nothing when no user is logged in.
        """
        if self._user is None:
            logger.debug("update_user called without a user, ignoring")
            return
        self._user = {**self._user, **partial}

    async def close(self) -> None:
        """Cancel in-flight calls and release the HTTP session."""
        await self._flights.cancel_all()
        await self.gateway.close()


@asynccontextmanager
async def open_session(
    config: Optional[AppConfig] = None,
    gateway: Optional[AuthGateway] = None,
    storage: Optional[TokenStorage] = None,
) -> AsyncIterator[SessionStore]:
    """
    Create a session store, resolve it, and close it on exit.

    The store is only handed out after ``check_auth`` has finished, so
    consumers never observe an unresolved session.
    """
    client_config = (config or get_config()).client
    store = SessionStore(
        gateway or AuthGateway.from_config(client_config),
        storage or FileTokenStorage.from_config(client_config),
    )
    try:
        await store.check_auth()
        yield store
    finally:
        await store.close()

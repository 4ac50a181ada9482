"""
HTTP transport for the session client.

The gateway performs the login, register, signup, email verification and
current-user calls and reports every outcome as a ``GatewayResult``. HTTP
errors, network failures, timeouts and malformed bodies are all returned,
never raised, so that the session store decides per operation whether a
failure is surfaced or swallowed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from ..config import ClientConfig

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
REGISTER_PATH = "/api/auth/register"
ME_PATH = "/api/auth/me"
SIGNUP_PATH = "/api/auth/signup"
VERIFY_EMAIL_PATH = "/api/auth/verify-email"

TIMEOUT_MESSAGE = "Request timed out. Please try again."
CONNECTION_MESSAGE = "Unable to connect to server. Please check your internet connection."


@dataclass
class GatewayResult:
    """Outcome of one gateway call."""

    ok: bool
    status: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)
    server_message: Optional[str] = None
    transport_error: Optional[str] = None

    @classmethod
    def success(cls, status: int, data: Dict[str, Any]) -> "GatewayResult":
        return cls(ok=True, status=status, data=data)

    @classmethod
    def failure(
        cls,
        status: Optional[int] = None,
        server_message: Optional[str] = None,
        transport_error: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> "GatewayResult":
        return cls(
            ok=False,
            status=status,
            data=data or {},
            server_message=server_message,
            transport_error=transport_error,
        )

    @property
    def description(self) -> str:
        """Best available explanation of a failure, for logs and exceptions."""
        if self.server_message:
            return self.server_message
        if self.transport_error:
            return self.transport_error
        if self.status is not None:
            return f"HTTP {self.status}"
        return "unknown failure"


def extract_server_message(body: Any) -> Optional[str]:
    """
    Pull the structured error message out of a response body.

    Accepts ``{"error": {"message": ...}}``, ``{"error": "..."}`` and
    ``{"message": ...}``.
    """
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    elif isinstance(error, str) and error:
        return error
    message = body.get("message")
    if isinstance(message, str) and message:
        return message
    return None


class AuthGateway:
    """
    aiohttp client for the SocialHub auth endpoints.

    The underlying ``aiohttp.ClientSession`` is created on first use and
    closed by ``close()``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout_seconds: float = 15.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: ClientConfig) -> "AuthGateway":
        return cls(base_url=config.base_url, timeout_seconds=config.timeout_seconds)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if the gateway created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> GatewayResult:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"} if token else None

        logger.debug(f"API Request: {method} {url}")
        try:
            async with self._get_session().request(method, url, json=json_body, headers=headers) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None

                if response.status < 200 or response.status >= 300:
                    message = extract_server_message(body)
                    logger.debug(f"API Response: {response.status} {message}")
                    return GatewayResult.failure(status=response.status, server_message=message)

                if not isinstance(body, dict):
                    return GatewayResult.failure(
                        status=response.status,
                        transport_error="Malformed response: expected a JSON object",
                    )

                logger.debug(f"API Response: {response.status}")
                return GatewayResult.success(response.status, body)

        except asyncio.TimeoutError:
            logger.warning(f"Request timeout: {method} {url}")
            return GatewayResult.failure(transport_error=TIMEOUT_MESSAGE)
        except aiohttp.ClientError as e:
            logger.warning(f"Network error for {method} {url}: {e}")
            return GatewayResult.failure(transport_error=CONNECTION_MESSAGE)

    @staticmethod
    def _require(result: GatewayResult, *keys: str) -> GatewayResult:
        if not result.ok:
            return result
        missing = [key for key in keys if not result.data.get(key)]
        if missing:
            return GatewayResult.failure(
                status=result.status,
                transport_error=f"Malformed response: missing {', '.join(missing)}",
                data=result.data,
            )
        return result

    async def login(self, email: str, password: str) -> GatewayResult:
        """POST the credentials; a successful result carries ``token`` and ``user``."""
        result = await self._request("POST", LOGIN_PATH, {"email": email, "password": password})
        return self._require(result, "token", "user")

    async def register(self, payload: Dict[str, Any]) -> GatewayResult:
        """POST the registration payload; a successful result carries ``token`` and ``user``."""
        result = await self._request("POST", REGISTER_PATH, dict(payload))
        return self._require(result, "token", "user")

    async def signup(self, payload: Dict[str, Any]) -> GatewayResult:
        """POST a pending signup; a successful result carries ``message``."""
        result = await self._request("POST", SIGNUP_PATH, dict(payload))
        return self._require(result, "message")

    async def verify_email(self, email: str, code: str) -> GatewayResult:
        """POST the emailed code; a successful result carries ``token`` and ``user``."""
        result = await self._request("POST", VERIFY_EMAIL_PATH, {"email": email, "code": code})
        return self._require(result, "token", "user")

    async def me(self, token: str) -> GatewayResult:
        """GET the current user with the bearer token; a successful result carries ``user``."""
        result = await self._request("GET", ME_PATH, token=token)
        return self._require(result, "user")

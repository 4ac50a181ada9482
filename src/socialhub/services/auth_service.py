"""
Authentication service for the SocialHub auth API.

This module provides password hashing, bearer token issuing and verification,
and the login, registration, email-verified signup, password reset and
current-user operations used by the API.
"""

import logging
import secrets
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Optional, Tuple

import bcrypt
import jwt

from ..config import get_config, AppConfig
from ..errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from ..repositories.code_repository import BaseCodeRepository, SupabaseCodeRepository
from ..repositories.user_repository import BaseUserRepository
from ..schemas.auth_schemas import PendingCode, RegisterRequest, UserRecord
from .email_service import EmailSender, LoggingEmailSender, password_reset_message, verification_message

logger = logging.getLogger(__name__)


def generate_code() -> str:
    """Random six-digit one-time code."""
    return str(100000 + secrets.randbelow(900000))


class TokenValidationError(UnauthorizedError):
    """Raised when a bearer token is missing, malformed, expired or forged."""
    pass


class AuthService:
    """
    Auth manager with bcrypt password hashing and JWT bearer tokens.
    """

    def __init__(
        self,
        repository: BaseUserRepository,
        config: Optional[AppConfig] = None,
        verifications: Optional[BaseCodeRepository] = None,
        resets: Optional[BaseCodeRepository] = None,
        email_sender: Optional[EmailSender] = None,
    ):
        self.repository = repository
        self.config = config or get_config()
        self.verifications = verifications or SupabaseCodeRepository(
            self.config.supabase.email_verifications_table
        )
        self.resets = resets or SupabaseCodeRepository(self.config.supabase.password_resets_table)
        self.email_sender = email_sender or LoggingEmailSender()

    def hash_password(self, password: str) -> str:
        rounds = self.config.auth.bcrypt_rounds
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """
        Verify a password against a bcrypt hash with constant-time comparison.

        Returns:
            True if password matches, False otherwise (including unreadable hashes)
        """
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash has an invalid format")
            return False

    def create_token(self, user: UserRecord) -> str:
        """
        Create a signed bearer token for a user.

        Args:
            user: The authenticated user

        Returns:
            Signed JWT token string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "userId": user.id,
            "email": user.email,
            "username": user.username,
            "iat": now,
            "exp": now + timedelta(hours=self.config.auth.jwt_expiration_hours),
        }
        token = jwt.encode(
            payload,
            self.config.auth.jwt_secret_key,
            algorithm=self.config.auth.jwt_algorithm,
        )
        logger.debug(f"Created bearer token for user {user.id}")
        return token

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a bearer token.

        Returns:
            Decoded token claims

        Raises:
            TokenValidationError: If token verification fails
        """
        try:
            payload = jwt.decode(
                token,
                self.config.auth.jwt_secret_key,
                algorithms=[self.config.auth.jwt_algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Bearer token has expired")
            raise TokenValidationError("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid bearer token: {e}")
            raise TokenValidationError(f"Invalid token: {e}")

        if not payload.get("userId") and not payload.get("sub"):
            raise TokenValidationError("Token missing user ID")
        return payload

    def extract_token_from_header(self, authorization_header: Optional[str]) -> str:
        """
        Extract the token from an Authorization header.

        Raises:
            TokenValidationError: If header is missing or not of the form "Bearer <token>"
        """
        if not authorization_header:
            raise TokenValidationError("Missing Authorization header")

        parts = authorization_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise TokenValidationError("Invalid Authorization header format. Expected: Bearer <token>")

        return parts[1]

    async def authenticate_user(self, identifier: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Authenticate a user with email or username and password.

        Returns:
            Dict with the issued ``token`` and the ``user`` record.

        Raises:
            ValidationError: If a credential is missing.
            UnauthorizedError: If the credentials do not match a user.
        """
        if not identifier or not password:
            raise ValidationError("Login credentials and password are required")

        normalized = identifier.strip().lower()
        user = await self.repository.find_by_login(normalized)
        if user is None or not self.verify_password(password, user.password_hash):
            logger.warning(f"Authentication failed for {normalized}")
            raise UnauthorizedError("Invalid credentials")

        logger.info(f"User authenticated successfully: {user.username}")
        return {"token": self.create_token(user), "user": user}

    async def _new_account_identity(self, request: RegisterRequest) -> Tuple[str, str]:
        """
        Validate a registration or signup payload.

        Returns:
            Tuple of the normalized (email, username).

        Raises:
            ValidationError: If a required field is missing.
            ConflictError: If the email or username is already taken.
        """
        if not request.email or not request.username or not request.password or not request.display_name:
            raise ValidationError("All fields are required")

        email = request.email.strip().lower()
        username = request.username.strip().lower()

        if await self.repository.exists(email, username):
            logger.warning(f"Registration rejected, email or username taken: {email} / {username}")
            raise ConflictError("Email or username already exists")
        return email, username

    async def register_user(self, request: RegisterRequest) -> Dict[str, Any]:
        """
        Register a new user and sign them in.

        Returns:
            Dict with the issued ``token`` and the created ``user`` record.

        Raises:
            ValidationError: If a required field is missing.
            ConflictError: If the email or username is already taken.
        """
        email, username = await self._new_account_identity(request)

        user = await self.repository.create({
            "email": email,
            "username": username,
            "password_hash": self.hash_password(request.password),
            "display_name": request.display_name,
            "avatar_name": request.avatar_name or "",
        })

        logger.info(f"User registered successfully: {username}")
        return {"token": self.create_token(user), "user": user}

    def _code_expiry(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(minutes=self.config.auth.verification_code_ttl_minutes)

    @staticmethod
    def _is_expired(pending: PendingCode) -> bool:
        expires_at = pending.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < datetime.now(timezone.utc)

    async def start_signup(self, request: RegisterRequest) -> None:
        """
        Hold a signup until its email is verified and mail the code.

        Any earlier pending signup for the same email is replaced.

        Raises:
            ValidationError: If a required field is missing.
            ConflictError: If the email or username is already taken.
        """
        email, username = await self._new_account_identity(request)
        code = generate_code()

        await self.verifications.replace(email, {
            "username": username,
            "password_hash": self.hash_password(request.password),
            "display_name": request.display_name,
            "avatar_name": request.avatar_name or "",
            "code": code,
            "expires_at": self._code_expiry().isoformat(),
        })
        await self.email_sender.send(
            verification_message(email, code, self.config.auth.verification_code_ttl_minutes)
        )
        logger.info(f"Verification code issued for {email}")

    async def verify_email(self, email: Optional[str], code: Optional[str]) -> Dict[str, Any]:
        """
        Turn a pending signup into an account.

        Returns:
            Dict with the issued ``token`` and the created ``user`` record.

        Raises:
            ValidationError: If a field is missing or the code is wrong or expired.
            ConflictError: If the email or username was taken in the meantime.
        """
        if not email or not code:
            raise ValidationError("Email and verification code are required")

        email = email.strip().lower()
        pending = await self.verifications.find(email, code.strip())
        if pending is None:
            raise ValidationError("Invalid or expired verification code")
        if self._is_expired(pending):
            raise ValidationError("Verification code has expired")

        if await self.repository.exists(email, pending.username or ""):
            await self.verifications.delete(email)
            raise ConflictError("Email or username already exists")

        user = await self.repository.create({
            "email": email,
            "username": pending.username,
            "password_hash": pending.password_hash,
            "display_name": pending.display_name,
            "avatar_name": pending.avatar_name or "",
        })
        await self.verifications.delete(email)

        logger.info(f"Email verified, user created: {user.username}")
        return {"token": self.create_token(user), "user": user}

    async def _user_by_email(self, email: str) -> Optional[UserRecord]:
        user = await self.repository.find_by_login(email)
        if user is None or user.email != email:
            return None
        return user

    async def request_password_reset(self, email: Optional[str]) -> None:
        """
        Mail a password reset code.

        Raises:
            ValidationError: If the email is missing or has no account.
        """
        if not email:
            raise ValidationError("Email is required")

        email = email.strip().lower()
        if await self._user_by_email(email) is None:
            raise ValidationError("No account found with this email")

        code = generate_code()
        await self.resets.replace(email, {
            "code": code,
            "expires_at": self._code_expiry().isoformat(),
        })
        await self.email_sender.send(
            password_reset_message(email, code, self.config.auth.verification_code_ttl_minutes)
        )
        logger.info(f"Password reset code issued for {email}")

    async def reset_password(
        self,
        email: Optional[str],
        code: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """
        Replace a password using a mailed reset code.

        Raises:
            ValidationError: If a field is missing, the code is wrong or
                expired, or the new password equals the current one.
            NotFoundError: If the account disappeared since the code was issued.
        """
        if not email or not code or not new_password:
            raise ValidationError("Email, code, and new password are required")

        email = email.strip().lower()
        pending = await self.resets.find(email, code.strip())
        if pending is None:
            raise ValidationError("Invalid or expired reset code")
        if self._is_expired(pending):
            raise ValidationError("Reset code has expired")

        user = await self._user_by_email(email)
        if user is None:
            raise NotFoundError(f"No account for {email}")
        if self.verify_password(new_password, user.password_hash):
            raise ValidationError("New password must be different from current password")

        await self.repository.update_password_hash(user.id, self.hash_password(new_password))
        await self.resets.delete(email)
        logger.info(f"Password reset for user {user.username}")

    def validate_session(self, authorization: Optional[str]) -> Dict[str, Any]:
        """
        Check a bearer token without touching storage.

        Returns:
            The identity claims: ``userId``, ``username`` and ``email``.

        Raises:
            TokenValidationError: If the header or token is invalid.
        """
        claims = self.verify_token(self.extract_token_from_header(authorization))
        return {
            "userId": str(claims.get("userId") or claims.get("sub")),
            "username": claims.get("username"),
            "email": claims.get("email"),
        }

    async def get_user_from_header(self, authorization: Optional[str]) -> UserRecord:
        """
        Resolve the user behind an Authorization header.

        Raises:
            TokenValidationError: If the header or token is invalid.
            NotFoundError: If the token refers to a user that no longer exists.
        """
        token = self.extract_token_from_header(authorization)
        claims = self.verify_token(token)
        user_id = str(claims.get("userId") or claims.get("sub"))

        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

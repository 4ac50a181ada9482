"""
Request and response schemas for the auth API.

Request fields are optional at the schema level so that missing values are
reported through the error classifier with the same messages the auth
service uses, instead of FastAPI's default validation payload.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Login credentials; ``login`` accepts an email or a username."""

    email: Optional[str] = Field(None, description="User email or username")
    login: Optional[str] = Field(None, description="Alternative field for email or username")
    password: Optional[str] = Field(None, description="Plain text password")

    @property
    def identifier(self) -> Optional[str]:
        """Return whichever login identifier was supplied."""
        return self.email or self.login


class RegisterRequest(BaseModel):
    """Registration payload; unknown fields are accepted and ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    avatar_name: Optional[str] = Field(None, alias="avatarName")


class UserRecord(BaseModel):
    """User row as stored in the ``users`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str
    username: str
    password_hash: str
    display_name: Optional[str] = None
    avatar_name: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_public(self) -> "UserPublic":
        return UserPublic(
            id=self.id,
            username=self.username,
            email=self.email,
            display_name=self.display_name,
            avatar_name=self.avatar_name or "",
        )


class PendingCode(BaseModel):
    """Row of ``email_verifications`` or ``password_resets``.

    Signup rows also carry the account fields collected at signup.
    """

    model_config = ConfigDict(extra="ignore")

    email: str
    code: str
    expires_at: datetime
    username: Optional[str] = None
    password_hash: Optional[str] = None
    display_name: Optional[str] = None
    avatar_name: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    code: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")


class UserPublic(BaseModel):
    """User fields returned to clients."""

    id: str = Field(..., description="User identifier")
    username: str = Field(..., description="Lower-cased username")
    email: str = Field(..., description="Lower-cased email address")
    display_name: Optional[str] = Field(None, description="Display name")
    avatar_name: str = Field("", description="Selected avatar name")


class AuthResponse(BaseModel):
    """Response for successful login and registration."""

    message: str
    token: str
    user: UserPublic


class MessageResponse(BaseModel):
    """Acknowledgement without a payload."""

    message: str


class SessionUser(BaseModel):
    """Identity claims carried by a bearer token."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    username: Optional[str] = None
    email: Optional[str] = None


class SessionValidationResponse(BaseModel):
    """Response for the session validation endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(True, alias="isValid")
    user: SessionUser


class MeResponse(BaseModel):
    """Response for the current-user endpoint."""

    user: UserPublic


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    timestamp: str = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database: str = Field(..., description="Database status")


class ErrorDetail(BaseModel):
    message: str
    stack: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error body produced by the error classifier."""

    success: bool = False
    error: ErrorDetail

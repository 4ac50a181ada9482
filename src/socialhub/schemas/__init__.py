"""
Pydantic schemas for the auth API.
"""

from .auth_schemas import (
    LoginRequest,
    RegisterRequest,
    VerifyEmailRequest,
    PasswordResetRequest,
    ResetPasswordRequest,
    UserRecord,
    PendingCode,
    UserPublic,
    AuthResponse,
    MessageResponse,
    MeResponse,
    SessionUser,
    SessionValidationResponse,
    HealthResponse,
    ErrorDetail,
    ErrorResponse,
)

__all__ = [
    "LoginRequest",
    "RegisterRequest",
    "VerifyEmailRequest",
    "PasswordResetRequest",
    "ResetPasswordRequest",
    "UserRecord",
    "PendingCode",
    "UserPublic",
    "AuthResponse",
    "MessageResponse",
    "MeResponse",
    "SessionUser",
    "SessionValidationResponse",
    "HealthResponse",
    "ErrorDetail",
    "ErrorResponse",
]

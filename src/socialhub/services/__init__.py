"""
Business services for the SocialHub auth API.
"""

from .auth_service import AuthService, TokenValidationError, generate_code
from .email_service import EmailMessage, EmailSender, LoggingEmailSender

__all__ = [
    "AuthService",
    "TokenValidationError",
    "generate_code",
    "EmailMessage",
    "EmailSender",
    "LoggingEmailSender",
]

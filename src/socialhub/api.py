"""
FastAPI Application for the SocialHub auth API.

This module provides the login, registration, email-verified signup, password
reset, session and current-user endpoints and routes every error through the
error classifier.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from socialhub import __version__
from socialhub.config.settings import AppConfig, get_config
from socialhub.errors import AppError, HTTPStatusError, ValidationError, classify_error
from socialhub.repositories.user_repository import SupabaseUserRepository
from socialhub.schemas.auth_schemas import (
    AuthResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    MeResponse,
    MessageResponse,
    PasswordResetRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionUser,
    SessionValidationResponse,
    VerifyEmailRequest,
)
from socialhub.services.auth_service import AuthService
from socialhub.utils.database import SupabaseClient, close_db_connections, get_db_client

# Configure logging
logging.basicConfig(
    level=get_config().logging.level,
    format=get_config().logging.format,
)
logger = logging.getLogger(__name__)

# Global auth service instance
auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """
    FastAPI dependency returning the global auth service.

    The Supabase repository is created on first use so the app can be
    imported without a reachable backend.
    """
    global auth_service
    if auth_service is None:
        auth_service = AuthService(SupabaseUserRepository())
    return auth_service


def get_database() -> SupabaseClient:
    """FastAPI dependency returning the global Supabase client wrapper."""
    return get_db_client()


ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    code: {"model": ErrorResponse}
    for code in (400, 401, 404, 409, 500)
}

router = APIRouter(prefix="/api/auth", tags=["auth"], responses=ERROR_RESPONSES)


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Log in with email or username and password."""
    result = await service.authenticate_user(request.identifier, request.password)
    return AuthResponse(
        message="Login successful",
        token=result["token"],
        user=result["user"].to_public(),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Create an account and log the new user in."""
    result = await service.register_user(request)
    return AuthResponse(
        message="Account created successfully",
        token=result["token"],
        user=result["user"].to_public(),
    )


@router.get("/me", response_model=MeResponse)
async def me(
    authorization: Optional[str] = Header(None),
    service: AuthService = Depends(get_auth_service),
):
    """Return the user behind the bearer token."""
    user = await service.get_user_from_header(authorization)
    return MeResponse(user=user.to_public())


@router.post("/signup", response_model=MessageResponse)
async def signup(request: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Hold a signup and email a six-digit verification code."""
    await service.start_signup(request)
    return MessageResponse(message="Verification code sent to your email.")


@router.post("/verify-email", response_model=AuthResponse)
async def verify_email(request: VerifyEmailRequest, service: AuthService = Depends(get_auth_service)):
    """Create the account held by a signup and log it in."""
    result = await service.verify_email(request.email, request.code)
    return AuthResponse(
        message="Email verified. Account created successfully!",
        token=result["token"],
        user=result["user"].to_public(),
    )


@router.post("/request-password-reset", response_model=MessageResponse)
async def request_password_reset(
    request: PasswordResetRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Email a six-digit password reset code."""
    await service.request_password_reset(request.email)
    return MessageResponse(message="Password reset code sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    """Set a new password using an emailed reset code."""
    await service.reset_password(request.email, request.code, request.new_password)
    return MessageResponse(message="Password updated successfully")


@router.get("/validate-session", response_model=SessionValidationResponse)
async def validate_session(
    authorization: Optional[str] = Header(None),
    service: AuthService = Depends(get_auth_service),
):
    """Check the bearer token without loading the user."""
    claims = service.validate_session(authorization)
    return SessionValidationResponse(is_valid=True, user=SessionUser(**claims))


def install_error_handlers(app: FastAPI, config: AppConfig) -> None:
    """Route application, validation and unexpected errors through the classifier."""
    environment = config.environment.lower()

    def _respond(exc: BaseException) -> JSONResponse:
        status_code, body = classify_error(exc, environment)
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _respond(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        error = HTTPStatusError(exc.status_code, str(exc.detail))
        error.__cause__ = exc
        response = _respond(error)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        error = ValidationError("; ".join(problems) or "Invalid request")
        error.__cause__ = exc
        return _respond(error)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        return _respond(exc)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Build the SocialHub API application.

    Args:
        config: Application configuration (global configuration by default)
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup and shutdown events."""
        logger.info(f"Starting SocialHub API server ({config.environment})...")
        yield
        logger.info("Shutting down SocialHub API server...")
        close_db_connections()

    app = FastAPI(
        title="SocialHub API",
        description="Authentication API for the SocialHub social-content application",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests."""
        start_time = time.time()
        logger.info(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(f"Response: {response.status_code} - {process_time:.3f}s")
        return response

    @app.get("/", response_model=Dict[str, str])
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "SocialHub API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse)
    def health_check(database: SupabaseClient = Depends(get_database)):
        """Health check endpoint; reports degraded when the database is unreachable."""
        database_status = database.health_check()["status"]
        return HealthResponse(
            status="healthy" if database_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
            database=database_status,
        )

    app.include_router(router)
    install_error_handlers(app, config)
    return app


app = create_app()

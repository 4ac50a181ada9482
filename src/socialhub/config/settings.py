"""
Configuration management for the SocialHub application.

This module handles all configuration settings including Supabase connection,
token signing, the API server, the session client and logging, using
Pydantic settings.
"""

from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import field_validator
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase-specific configuration settings."""

    url: str = "https://placeholder.supabase.co"
    key: str = "placeholder_key"
    timeout: int = 30
    users_table: str = "users"
    email_verifications_table: str = "email_verifications"
    password_resets_table: str = "password_resets"

    class Config:
        env_prefix = "SUPABASE_"
        case_sensitive = False
        extra = "ignore"

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Supabase URL format."""
        if not v.startswith("https://") or "supabase.co" not in v:
            raise ValueError("Invalid Supabase URL format")
        return v


class AuthConfig(BaseSettings):
    """Bearer token and password hashing configuration."""

    jwt_secret_key: str = "socialhub-development-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24
    bcrypt_rounds: int = 10
    verification_code_ttl_minutes: int = 15

    class Config:
        env_prefix = ""
        case_sensitive = False
        extra = "ignore"

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate JWT secret key."""
        if len(v) < 32:
            raise ValueError("JWT secret key must be at least 32 characters long")
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """bcrypt accepts cost factors between 4 and 31."""
        if v < 4 or v > 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        return v


class APIConfig(BaseSettings):
    """API server configuration."""

    host: str = "localhost"
    port: int = 3001
    debug: bool = False
    cors_origins: List[str] = ["http://localhost:3000"]

    class Config:
        env_prefix = "API_"
        case_sensitive = False
        extra = "ignore"


class ClientConfig(BaseSettings):
    """Session client configuration."""

    base_url: str = "http://localhost:3001"
    timeout_seconds: float = 15.0
    storage_path: str = "~/.socialhub/storage.json"
    token_key: str = "token"

    class Config:
        env_prefix = "CLIENT_"
        case_sensitive = False
        extra = "ignore"

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Strip the trailing slash so endpoint paths can be appended."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Client base URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate request timeout."""
        if v <= 0:
            raise ValueError("Client timeout must be positive")
        return v


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_prefix = "LOG_"
        case_sensitive = False
        extra = "ignore"


class AppConfig(BaseSettings):
    """Main application configuration."""

    environment: str = "production"

    # Sub-configurations
    supabase: SupabaseConfig
    auth: AuthConfig
    api: APIConfig
    client: ClientConfig
    logging: LoggingConfig

    def __init__(self, **kwargs):
        # Initialize sub-configurations unless explicitly provided
        kwargs.setdefault("supabase", SupabaseConfig())
        kwargs.setdefault("auth", AuthConfig())
        kwargs.setdefault("api", APIConfig())
        kwargs.setdefault("client", ClientConfig())
        kwargs.setdefault("logging", LoggingConfig())
        super().__init__(**kwargs)

    class Config:
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra environment variables

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"


# Global configuration instance
config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global configuration instance.

    Returns:
        AppConfig: The application configuration instance.
    """
    global config
    if config is None:
        config = AppConfig()
    return config


def reload_config() -> AppConfig:
    """
    Reload the configuration from environment variables.

    Returns:
        AppConfig: The reloaded application configuration instance.
    """
    global config
    config = AppConfig()
    return config

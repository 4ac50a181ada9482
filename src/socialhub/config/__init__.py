"""
Configuration management package for SocialHub.

This package handles all configuration settings, validation, and management
for the API server, the session client and the admin scripts.
"""

from .settings import (
    get_config,
    reload_config,
    AppConfig,
    SupabaseConfig,
    AuthConfig,
    APIConfig,
    ClientConfig,
    LoggingConfig,
)

__all__ = [
    "get_config",
    "reload_config",
    "AppConfig",
    "SupabaseConfig",
    "AuthConfig",
    "APIConfig",
    "ClientConfig",
    "LoggingConfig",
]

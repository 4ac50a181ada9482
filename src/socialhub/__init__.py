"""
SocialHub - authentication core of the SocialHub social-content application.

This package contains the server-side auth API with its error classifier and
the client-side session library used by SocialHub front ends.

Modules:
    api: FastAPI application exposing the auth endpoints
    errors: Error kinds and the error-to-HTTP-status classifier
    client: Session store, auth gateway, token storage and verification flow
    services: Authentication service (password hashing, bearer tokens)
    repositories: Supabase-backed user persistence
    schemas: Pydantic request and response models
    utils: Supabase client wrapper
    migrations: One-shot administrative migration runner
"""

__version__ = "0.1.0"
__author__ = "SocialHub Team"

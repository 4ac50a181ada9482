#!/usr/bin/env python3
"""
Startup script for the SocialHub API server.

This script starts the FastAPI server with proper configuration and logging.
"""

import logging
import sys

import uvicorn

from socialhub.config.settings import get_config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Start the API server."""
    try:
        config = get_config()

        logger.info("Starting SocialHub API Server...")
        logger.info(f"Environment: {config.environment}")
        logger.info(f"Host: {config.api.host}")
        logger.info(f"Port: {config.api.port}")
        logger.info(f"Debug: {config.api.debug}")
        logger.info(f"CORS Origins: {config.api.cors_origins}")

        uvicorn.run(
            "socialhub.api:app",
            host=config.api.host,
            port=config.api.port,
            reload=config.api.debug,
            log_level="info",
            access_log=True,
        )

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

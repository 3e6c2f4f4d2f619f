"""Main entry point - runs the route planning API."""

import logging

import uvicorn

from bridgeroute.config import get_settings

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    settings = get_settings()

    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("Starting BridgeRoute...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Starting API server on {settings.api_host}:{settings.api_port}")

    uvicorn.run(
        "bridgeroute.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()

"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from bridgeroute.cache import create_cache
from bridgeroute.config import get_settings
from bridgeroute.errors import BridgeRouteError
from bridgeroute.rpc import RpcClientRegistry
from bridgeroute.web.controllers import (
    bridge_route_exception_handler,
    routes_router,
    validation_exception_handler,
)
from bridgeroute.web.services import create_route_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    settings = get_settings()
    logger.debug(f"Settings: {settings.get_safe_dict()}")
    registry = RpcClientRegistry(settings)
    cache = create_cache(settings)
    app.state.rpc_registry = registry
    app.state.route_service = create_route_service(settings, registry=registry, cache=cache)
    logger.info(f"Route service ready (strategy: {settings.allocation_strategy.value})")

    yield

    # Shutdown
    await cache.close()
    await registry.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="BridgeRoute API",
        description="Cross-chain bridge route planning API",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(BridgeRouteError, bridge_route_exception_handler)

    app.include_router(routes_router)

    return app


# Default app instance
app = create_app()

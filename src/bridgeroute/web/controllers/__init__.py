"""HTTP controllers for the web API.

All operations are read-only: routes are planned and priced, never executed.
"""

from bridgeroute.web.controllers.routes import (
    bridge_route_exception_handler,
    get_route_service,
    router as routes_router,
    validation_exception_handler,
)

__all__ = [
    "routes_router",
    "get_route_service",
    "validation_exception_handler",
    "bridge_route_exception_handler",
]

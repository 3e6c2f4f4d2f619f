"""Bridge route API endpoint."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bridgeroute.errors import BridgeRouteError, ValidationError
from bridgeroute.web.contracts.routes import BridgeRouteRequest, RouteEnvelope
from bridgeroute.web.services.route_service import RouteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bridge", tags=["bridge"])


def get_route_service(request: Request) -> RouteService:
    """Route service built by the application lifespan."""
    service = getattr(request.app.state, "route_service", None)
    if service is None:
        raise RuntimeError("Route service is not initialized; start the app with its lifespan")
    return service


@router.post("/routes", response_model=RouteEnvelope)
async def get_bridge_routes(
    body: BridgeRouteRequest,
    service: RouteService = Depends(get_route_service),
) -> JSONResponse:
    """Plan the cheapest bridge routes that fund the target chain.

    This is a READ-ONLY operation - routes are priced, never executed.
    """
    result = await service.get_optimal_routes(body)
    return JSONResponse(content=result)


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return request validation failures in the route envelope shape."""
    return await bridge_route_exception_handler(request, ValidationError(_format_validation_errors(exc)))


async def bridge_route_exception_handler(request: Request, exc: BridgeRouteError) -> JSONResponse:
    """Return request-level planning errors in the route envelope shape."""
    logger.warning(f"Route request failed: {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "data": None, "error": exc.message, "code": exc.code},
    )

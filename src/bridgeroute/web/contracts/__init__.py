"""Request and response contracts for the web API."""

from bridgeroute.web.contracts.routes import (
    BridgeRouteModel,
    BridgeRouteRequest,
    RouteEnvelope,
    RouteResponseModel,
)

__all__ = [
    "BridgeRouteRequest",
    "BridgeRouteModel",
    "RouteResponseModel",
    "RouteEnvelope",
]

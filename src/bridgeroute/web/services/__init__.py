"""Web services layer."""

from bridgeroute.web.services.route_service import RouteService, create_route_service

__all__ = ["RouteService", "create_route_service"]

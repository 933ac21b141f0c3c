# routeserver/core/errors.py
from typing import Optional


class RoutingError(Exception):
    """
    Base exception for everything the routing pipeline can raise.

    Each subclass carries the HTTP status and the short error code used in
    the JSON error body. ``stage`` is filled in by the orchestrator with the
    request stage that failed.
    """

    status_code: int = 500
    error_code: str = "routing_error"

    def __init__(self, message: str = "", stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage


class ConfigurationError(RoutingError):
    """Startup artifacts missing, unparseable or inconsistent with each other."""

    error_code = "configuration_error"


class RequestError(RoutingError):
    """The caller sent something we cannot route."""

    status_code = 400
    error_code = "invalid_request"


class UnknownBackend(RequestError):
    error_code = "unknown_backend"


class SnapDistanceExceeded(RequestError):
    status_code = 422
    error_code = "snap_distance_exceeded"


class InvalidVertex(RoutingError):
    """A vertex ID outside the backend's graph reached a backend."""

    error_code = "invalid_vertex"


class NoPathFound(RoutingError):
    status_code = 404
    error_code = "no_path"


class IntegrityError(RoutingError):
    """Loaded artifacts disagree with the graph they were built from."""

    error_code = "integrity_error"


class ShortcutIntegrityError(IntegrityError):
    error_code = "shortcut_integrity_error"


class PathValidationError(IntegrityError):
    error_code = "path_validation_error"


class RouteTimeout(RoutingError):
    status_code = 504
    error_code = "timeout"

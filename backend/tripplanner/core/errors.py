"""
Domain error taxonomy for itinerary generation.

Domain errors are caller-recoverable and carry a fixed human-readable message
plus the HTTP status the API boundary answers with. Anything else raised while
generating (a repository timeout, a broken connection) is an infrastructure
failure and is propagated untouched.
"""
from typing import Dict, Optional


class DomainError(Exception):
    """Base class for recoverable, caller-facing business errors."""

    status_code: int = 400
    default_message: str = "Request cannot be processed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NoPlacesAttached(DomainError):
    default_message = "No places added for this trip."


class NoOriginPoint(DomainError):
    default_message = "Trip has no origin point (no fixed places and no start location)."


class DuplicateAttachment(DomainError):
    default_message = "This place is already attached to the trip."


class TripNotFound(DomainError):
    status_code = 404
    default_message = "Trip not found."


class RouteParameterError(ValueError):
    """Out-of-range ``days`` / ``radius`` values, reported per field."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        detail = "; ".join(f"{field}: {msg}" for field, msg in errors.items())
        super().__init__(detail)

class QueryError(Exception):
    """Base exception for rejected client queries."""


class InvalidCoordinateError(QueryError):
    """Raised when a latitude/longitude is missing or not a usable number."""


class InvalidQueryError(QueryError):
    """Raised when a non-coordinate query parameter is out of range."""


class RouteNotFound(Exception):
    """Raised when a route has no trips in the current feed."""

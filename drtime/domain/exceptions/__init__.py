from .feeds import FeedError, FeedFetchError, FeedParseError
from .query import InvalidCoordinateError, InvalidQueryError, QueryError, RouteNotFound

__all__ = [
    "FeedError",
    "FeedFetchError",
    "FeedParseError",
    "InvalidCoordinateError",
    "InvalidQueryError",
    "QueryError",
    "RouteNotFound",
]

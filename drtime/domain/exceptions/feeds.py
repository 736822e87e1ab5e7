class FeedError(Exception):
    """Base exception for transit feed retrieval failures."""


class FeedFetchError(FeedError):
    """Raised when a feed cannot be downloaded or is missing expected tables."""


class FeedParseError(FeedError):
    """Raised when a downloaded feed cannot be decoded."""

"""
Exceptions raised by the matching layer.
"""


class MatchingError(Exception):
    """Base exception for matching errors."""
    pass


class NotFoundError(MatchingError):
    """Raised when a user profile or activity does not exist."""
    pass


class ScoringUnavailableError(MatchingError):
    """Raised when the LLM scorer cannot produce a usable response."""
    pass

"""Exception hierarchy for rank checking."""

from typing import Optional


class RankWatchError(Exception):
    """Base class for all rankwatch errors."""


class ConfigError(RankWatchError):
    """A batch run cannot start: missing credential, target, or keywords."""


class ProviderError(RankWatchError):
    """The search-results provider failed for a single query.

    Attributes:
        status_code: Upstream HTTP status, or ``None`` for network errors
            and timeouts.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(RankWatchError):
    """The record store could not be reached while saving a batch."""


class DuplicateKeywordError(RankWatchError):
    """A keyword with the same (trimmed) text is already tracked."""


class KeywordNotFoundError(RankWatchError):
    """No keyword exists with the requested id."""

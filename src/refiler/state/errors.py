"""History persistence errors."""


class StateError(Exception):
    """Base exception for history repository operations."""


class MissingHistoryEntryError(StateError):
    """Raised when a history entry id is unknown."""

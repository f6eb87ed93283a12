"""Exception types raised by the inspector core."""


class InspectorError(Exception):
    """Base class for all inspector failures."""

    pass


class ValidationError(InspectorError, ValueError):
    """Raised when a storage location is empty or blank."""

    pass


class StorageUnavailable(InspectorError):
    """Raised when a session cannot be opened against the store.

    Covers missing or unreadable database files and stores whose schema
    does not contain the commit tables.
    """

    def __init__(self, message: str, location: str = ""):
        super().__init__(message)
        self.location = location


class QueryFailure(InspectorError):
    """Raised when a read query fails after the session was opened."""

    pass


class CommitNotFound(InspectorError, LookupError):
    """Raised when a hash prefix matches no loaded commit, or several."""

    pass

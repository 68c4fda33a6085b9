"""Errors raised by the embassy checker."""


class EmbassyCheckError(Exception):
    """Base class for all embassy checker errors."""
    pass


class InvalidConfiguration(EmbassyCheckError):
    """Raised when a query configuration violates a precondition."""
    pass


class EntityNotFound(EmbassyCheckError):
    """Raised when the region whose embassies to check does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Region does not exist: {name}")
        self.name = name


class Cancelled(EmbassyCheckError):
    """Raised when a running query was cancelled between fetches."""
    pass


class ExecutionInProgress(EmbassyCheckError):
    """Raised when a query engine is asked to run while already running."""
    pass


class FetchError(EmbassyCheckError):
    """Raised when the data source fails for a reason other than a missing region."""
    pass

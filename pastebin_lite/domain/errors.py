from __future__ import annotations


class PasteError(Exception):
    """Base class for paste-related errors."""


class InvalidArgument(PasteError):
    """Raised when a paste request has the wrong shape or range."""


class StoreUnavailable(PasteError):
    """Raised when the database cannot be reached or a query fails."""


class ExhaustedRetries(PasteError):
    """Raised when no free paste id was found within the retry budget."""

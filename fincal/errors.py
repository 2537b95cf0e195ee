"""Exception types raised by fincal."""


class FincalError(Exception):
    """Base class for application errors."""


class RecordError(FincalError, ValueError):
    """A persisted record could not be decoded into a canonical transaction."""


class ValidationError(FincalError, ValueError):
    """User input was rejected before reaching the store."""

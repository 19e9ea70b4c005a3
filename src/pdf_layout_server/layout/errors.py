"""Exceptions raised by the layout engine."""


class LayoutError(Exception):
    """Base class for layout engine failures."""

    pass


class InvalidArgumentsError(LayoutError, ValueError):
    """Raised when an operation is called with missing or malformed input."""

    pass


class OutOfMemoryError(LayoutError, MemoryError):
    """Raised when a result list could not be built."""

    pass


class OperationFailedError(LayoutError):
    """Raised when the rendering backend fails."""

    pass


class InvalidPasswordError(LayoutError):
    """Raised when an encrypted document cannot be unlocked."""

    pass

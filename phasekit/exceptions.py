"""
Custom exceptions for phasekit.
"""


class PhasekitError(Exception):
    """Base exception for all phasekit errors."""
    pass


class ValidationError(PhasekitError):
    """Raised when validation fails for a phase, project or recurrence config."""
    pass


class NotFoundError(PhasekitError):
    """Raised when a requested phase or project is not found."""
    pass


class InvalidOperationError(PhasekitError):
    """Raised when an operation is not allowed in the current state."""
    pass


class StorageError(PhasekitError):
    """Raised when the storage collaborator fails to read or write."""
    pass


class ConfigurationError(PhasekitError):
    """Raised when there's a configuration or setup issue."""
    pass


class GenerationError(PhasekitError):
    """Raised when a batch of occurrence creates fails partway.

    Occurrences that were persisted before the failure are kept; the
    caller may retry the remainder.
    """

    def __init__(self, message: str, created: int = 0, failed: int = 0) -> None:
        super().__init__(message)
        self.created = created
        self.failed = failed

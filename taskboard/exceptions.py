class ValidationError(Exception):
    """Raised when caller-supplied task data breaks a content rule."""


class NotFoundError(Exception):
    """Raised when a task id is malformed or matches no stored task."""


class StorageError(Exception):
    """Raised when the task store is unreachable or fails unexpectedly."""


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing."""

class StorageError(Exception):
    """Base exception for blob source operations."""


class BlobNotFoundError(StorageError):
    """Raised when the requested object does not exist."""


class BlobTransientError(StorageError):
    """Raised on I/O failures that may succeed when retried."""


class UnsupportedStorageBackendError(StorageError):
    """Raised when the configured storage backend is unknown."""

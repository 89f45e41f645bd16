from pathlib import Path

from docintake.config.settings import Settings
from docintake.resilience.retry import RetryPolicy
from docintake.storage.base import BaseBlobSource
from docintake.storage.exceptions import UnsupportedStorageBackendError
from docintake.storage.http_adapter import HttpBlobSource
from docintake.storage.local_adapter import LocalBlobSource


class BlobSourceFactory:
    """Creates the blob source for the configured storage backend."""

    BACKENDS = ("local", "http")

    @classmethod
    def create(cls, settings: Settings) -> BaseBlobSource:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalBlobSource(
                Path(settings.files_root),
                timeout_seconds=settings.storage_timeout_seconds,
                retry_policy=RetryPolicy.from_settings(settings),
            )
        if backend == "http":
            if not settings.storage_base_url:
                raise UnsupportedStorageBackendError(
                    "storage_base_url is required for storage_backend=http"
                )
            return HttpBlobSource(
                base_url=settings.storage_base_url,
                timeout_seconds=settings.storage_timeout_seconds,
                api_key=settings.storage_api_key,
                retry_policy=RetryPolicy.from_settings(settings),
            )
        raise UnsupportedStorageBackendError(
            f"storage_backend '{backend}' is not supported. Choose from: {list(cls.BACKENDS)}"
        )

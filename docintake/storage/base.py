from abc import ABC, abstractmethod


class BaseBlobSource(ABC):
    """Contract for raw document byte sources."""

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """Return the bytes stored under ``path``.

        Raises:
            BlobNotFoundError: if nothing is stored under ``path``.
            BlobTransientError: on I/O failures worth retrying.
        """

    async def aclose(self) -> None:
        """Release network resources held by the source."""
        return None

import asyncio
from pathlib import Path

from docintake.resilience.retry import RetryPolicy, retry_async
from docintake.storage.base import BaseBlobSource
from docintake.storage.exceptions import BlobNotFoundError, BlobTransientError


class LocalBlobSource(BaseBlobSource):
    """Reads document bytes from a directory on the local filesystem.

    Each read is bounded by ``timeout_seconds``; timeouts and I/O errors other
    than a missing file are retried.
    """

    FILES_ROOT = Path("/app/files")

    def __init__(
        self,
        files_root: Path | None = None,
        *,
        timeout_seconds: float = 60.0,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._timeout_seconds = timeout_seconds
        self._retry_policy = retry_policy or RetryPolicy()

    async def download(self, path: str) -> bytes:
        resolved = self._resolve_path(path)
        return await retry_async(
            lambda: self._read_once(resolved),
            policy=self._retry_policy,
            retry_on=(BlobTransientError,),
            description=f"Read of '{path}'",
        )

    async def _read_once(self, resolved: Path) -> bytes:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(resolved.read_bytes), timeout=self._timeout_seconds
            )
        except FileNotFoundError as exc:
            raise BlobNotFoundError(f"File not found: {resolved}") from exc
        except asyncio.TimeoutError as exc:
            raise BlobTransientError(
                f"Reading {resolved} timed out after {self._timeout_seconds}s"
            ) from exc
        except OSError as exc:
            raise BlobTransientError(f"Could not read {resolved}: {exc}") from exc

    def _resolve_path(self, path: str) -> Path:
        root = self._files_root.resolve()
        resolved = (root / path.lstrip("/")).resolve()
        if not resolved.is_relative_to(root):
            raise BlobNotFoundError(f"Path escapes storage root: {path}")
        return resolved

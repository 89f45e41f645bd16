import asyncio

import httpx

from docintake.resilience.retry import RetryPolicy, retry_async
from docintake.storage.base import BaseBlobSource
from docintake.storage.exceptions import BlobNotFoundError, BlobTransientError


class HttpBlobSource(BaseBlobSource):
    """Downloads document bytes from an object-storage HTTP endpoint.

    Objects are fetched with ``GET {base_url}/{path}``; an API key, when set,
    is sent as a bearer token.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        api_key: str = "",
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )
        self._timeout_seconds = timeout_seconds
        self._retry_policy = retry_policy or RetryPolicy()

    async def download(self, path: str) -> bytes:
        return await retry_async(
            lambda: self._download_once(path),
            policy=self._retry_policy,
            retry_on=(BlobTransientError,),
            description=f"Download of '{path}'",
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _download_once(self, path: str) -> bytes:
        try:
            response = await asyncio.wait_for(
                self._client.get(f"/{path.lstrip('/')}"), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise BlobTransientError(
                f"Storage request for {path} timed out after {self._timeout_seconds}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise BlobTransientError(f"Storage request failed: {exc}") from exc

        if response.status_code == 404:
            raise BlobNotFoundError(f"Object not found: {path}")
        if response.status_code >= 500 or response.status_code == 429:
            raise BlobTransientError(
                f"Storage returned HTTP {response.status_code} for {path}"
            )
        if response.status_code >= 400:
            raise BlobNotFoundError(
                f"Storage rejected {path} with HTTP {response.status_code}"
            )
        return response.content

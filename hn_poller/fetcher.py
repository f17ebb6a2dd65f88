"""Raw GET wrapper around a shared httpx client."""

import logging
from typing import Optional

import httpx

from hn_poller.config import FETCH_TIMEOUT
from hn_poller.errors import NetworkError, ReadError

log = logging.getLogger("hn_poller")


class Fetcher:
    """Performs single GET requests and returns the raw body.

    No retries and no status-code checks: callers decide whether the payload
    is usable. The response is closed on every exit path.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = FETCH_TIMEOUT,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout

    async def fetch(self, url: str) -> bytes:
        try:
            async with self._client.stream("GET", url, timeout=self.timeout) as resp:
                try:
                    body = await resp.aread()
                except httpx.HTTPError as e:
                    raise ReadError(f"error reading response body: {e}", url) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"error retrieving URL {url}: {e}", url) from e

        if resp.status_code >= 400:
            log.debug(f"[fetch] {url} returned HTTP {resp.status_code}")
        return body

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

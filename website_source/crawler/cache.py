"""
Per-crawl memoization of fetches.
"""

import asyncio
from typing import Dict, Optional

from .models import RequestOptions
from .transport import FetchResponse, ProxyTransport
from ..utils.log import get_logger


class FetchCache:
    """
    Shares one transport call per URL for the duration of a crawl.

    Concurrent requests for the same URL await the same task. Failed fetches
    are evicted so a later attempt starts fresh.
    """

    def __init__(self, transport: ProxyTransport):
        """
        Args:
            transport: Transport used for cache misses
        """
        self.transport = transport
        self.logger = get_logger("cache")
        self._entries: Dict[str, "asyncio.Future[FetchResponse]"] = {}

    async def fetch(
        self,
        url: str,
        options: Optional[RequestOptions] = None,
        force_fresh: bool = False
    ) -> FetchResponse:
        """
        Fetch a URL, reusing an in-flight or completed request.

        Args:
            url: Target URL
            options: Request options forwarded to the transport
            force_fresh: Bypass and replace any cached entry

        Returns:
            The fetched response

        Raises:
            TransportError: If the underlying fetch failed
        """
        entry = self._entries.get(url)
        if entry is not None and not force_fresh:
            return await asyncio.shield(entry)

        entry = asyncio.ensure_future(self.transport.fetch(url, options))
        self._entries[url] = entry

        try:
            return await asyncio.shield(entry)
        except Exception:
            # Leave newer entries from a forced refresh alone
            if self._entries.get(url) is entry:
                del self._entries[url]
                self.logger.debug(f"Evicted failed fetch for {url}")
            raise

    def clear(self) -> None:
        """Drop every cached entry; called at the start of each crawl."""
        for entry in self._entries.values():
            if not entry.done():
                entry.cancel()
        self._entries.clear()

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

"""
Transport layer for fetching resources through a proxy chain.

Uses aiohttp; every request is routed through an ordered list of proxy
endpoints and falls back to the next proxy on failure.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import aiohttp
from aiohttp import ClientError, ClientTimeout

from .errors import AllProxiesExhausted, TransportError
from .models import RequestOptions
from ..utils.constants import DEFAULT_PROXIES, DEFAULT_TIMEOUT
from ..utils.log import get_logger
from ..utils.paths import build_proxied_url


@dataclass(frozen=True)
class FetchResponse:
    """A fully read HTTP response."""

    url: str
    status: int
    status_text: str
    content_type: str
    body: bytes
    proxy: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def size(self) -> int:
        return len(self.body)

    def text(self) -> str:
        return self.body.decode('utf-8', errors='ignore')


class ProxyTransport:
    """
    Fetches URLs through an ordered proxy chain.

    On a non-2xx response, a connection error or a timeout the same request
    is retried through the next proxy; when the chain is exhausted
    ``AllProxiesExhausted`` is raised.
    """

    def __init__(
        self,
        proxies: Optional[Sequence[str]] = None,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the transport.

        Args:
            proxies: Proxy prefixes in the order they are tried
                     (an empty string means a direct request)
            timeout: Total timeout per attempt in seconds
            session: Existing session to use instead of creating one
        """
        self.proxies: List[str] = list(DEFAULT_PROXIES if proxies is None else proxies)
        self.timeout = ClientTimeout(total=timeout)
        self.logger = get_logger("transport")

        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ProxyTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying session if this transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(
        self,
        url: str,
        options: Optional[RequestOptions] = None
    ) -> FetchResponse:
        """
        Fetch a URL through the proxy chain.

        Args:
            url: Target URL
            options: Request options whose headers are forwarded

        Returns:
            The first successful response

        Raises:
            AllProxiesExhausted: If every proxy failed
        """
        headers = options.to_headers() if options else {}
        attempts: List[Tuple[str, str]] = []

        for proxy in self.proxies:
            proxied_url = build_proxied_url(proxy, url)
            label = proxy or "direct"

            try:
                response = await self._request(url, proxied_url, headers, proxy)
            except ClientError as e:
                self.logger.debug(f"Proxy {label} failed to connect for {url}: {e}")
                attempts.append((label, f"connection error: {e}"))
                continue
            except asyncio.TimeoutError:
                self.logger.debug(f"Proxy {label} timed out for {url}")
                attempts.append((label, "timeout"))
                continue

            if not response.ok:
                self.logger.debug(
                    f"Proxy {label} returned status {response.status} for {url}. Trying next..."
                )
                attempts.append((label, f"HTTP {response.status}"))
                continue

            return response

        raise AllProxiesExhausted(url, attempts)

    async def fetch_direct(
        self,
        url: str,
        options: Optional[RequestOptions] = None
    ) -> FetchResponse:
        """
        Fetch a URL without any proxy.

        Args:
            url: Target URL
            options: Optional request options

        Returns:
            The successful response

        Raises:
            TransportError: On connection failure, timeout or a non-2xx status
        """
        headers = options.to_headers() if options else {}

        try:
            response = await self._request(url, url, headers, "")
        except ClientError as e:
            raise TransportError(url, f"Connection error for {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportError(url, f"Timeout fetching {url}") from e

        if not response.ok:
            raise TransportError(
                url,
                f"Fetch failed with status: {response.status}",
                status=response.status
            )

        return response

    async def _request(
        self,
        url: str,
        request_url: str,
        headers: Dict[str, str],
        proxy: str
    ) -> FetchResponse:
        session = self._get_session()

        async with session.get(
            request_url,
            headers=headers,
            allow_redirects=True,
            timeout=self.timeout
        ) as response:
            body = await response.read()
            return FetchResponse(
                url=url,
                status=response.status,
                status_text=response.reason or "",
                content_type=response.headers.get('Content-Type', 'application/octet-stream'),
                body=body,
                proxy=proxy
            )

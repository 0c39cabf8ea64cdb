"""Shared fixtures: an in-memory transport standing in for the proxy chain."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from website_source.crawler.errors import AllProxiesExhausted, TransportError
from website_source.crawler.transport import FetchResponse


def make_response(
    url: str,
    body: Union[str, bytes] = b"",
    content_type: str = "text/html",
    status: int = 200,
    status_text: str = "OK",
) -> FetchResponse:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return FetchResponse(
        url=url,
        status=status,
        status_text=status_text,
        content_type=content_type,
        body=body,
        proxy="fake",
    )


class FakeTransport:
    """Serves canned responses; unknown URLs fail like an exhausted chain."""

    def __init__(
        self,
        responses: Optional[Dict[str, Union[FetchResponse, Exception]]] = None,
        delays: Optional[Dict[str, float]] = None,
        direct: Optional[Dict[str, FetchResponse]] = None,
    ):
        self.responses = dict(responses or {})
        self.delays = dict(delays or {})
        self.direct = dict(direct or {})
        self.calls: List[str] = []
        self.direct_calls: List[str] = []
        self.options_seen: List[object] = []
        self.active = 0
        self.max_active = 0

    async def fetch(self, url, options=None):
        self.calls.append(url)
        self.options_seen.append(options)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
            result = self.responses.get(url)
            if result is None:
                raise AllProxiesExhausted(url, [("fake", "HTTP 404")])
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.active -= 1

    async def fetch_direct(self, url, options=None):
        self.direct_calls.append(url)
        result = self.direct.get(url)
        if result is None:
            raise TransportError(url, "Fetch failed with status: 404", status=404)
        return result

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    def count(self, url: str) -> int:
        return self.calls.count(url)


@pytest.fixture
def fake_transport():
    return FakeTransport()

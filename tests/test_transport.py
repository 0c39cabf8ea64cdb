"""Tests for the proxy chain transport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from website_source.crawler.errors import AllProxiesExhausted, TransportError
from website_source.crawler.models import RequestOptions
from website_source.crawler.transport import FetchResponse, ProxyTransport


TARGET = "https://x.com/js/app.js"


def response_cm(status=200, body=b"", content_type="application/javascript", reason="OK"):
    """Build what ``session.get`` returns: an async context manager around a response."""
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.headers = {"Content-Type": content_type}
    response.read = AsyncMock(return_value=body)

    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=response)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def make_session(*results):
    session = MagicMock()
    session.closed = False
    session.get = MagicMock(side_effect=list(results))
    session.close = AsyncMock()
    return session


def requested_urls(session):
    return [call.args[0] for call in session.get.call_args_list]


@pytest.mark.asyncio
async def test_falls_back_until_a_proxy_succeeds():
    session = make_session(
        response_cm(status=500, reason="Internal Server Error"),
        response_cm(status=500, reason="Internal Server Error"),
        response_cm(status=200, body=b"console.log(1)"),
    )
    transport = ProxyTransport(proxies=["https://p1/?url=", "https://p2/", ""], session=session)

    response = await transport.fetch(TARGET)

    assert response.ok
    assert response.body == b"console.log(1)"
    assert response.url == TARGET
    assert response.proxy == ""
    assert requested_urls(session) == [
        "https://p1/?url=https%3A%2F%2Fx.com%2Fjs%2Fapp.js",
        "https://p2/https://x.com/js/app.js",
        "https://x.com/js/app.js",
    ]


@pytest.mark.asyncio
async def test_connection_errors_and_timeouts_advance_the_chain():
    session = make_session(
        aiohttp.ClientConnectionError("refused"),
        asyncio.TimeoutError(),
        response_cm(status=200, body=b"ok", content_type="text/plain"),
    )
    transport = ProxyTransport(proxies=["https://p1/", "https://p2/", "https://p3/"], session=session)

    response = await transport.fetch(TARGET)

    assert response.status == 200
    assert response.content_type == "text/plain"
    assert session.get.call_count == 3


@pytest.mark.asyncio
async def test_all_proxies_exhausted():
    session = make_session(
        response_cm(status=500),
        response_cm(status=403),
    )
    transport = ProxyTransport(proxies=["https://p1/", "https://p2/"], session=session)

    with pytest.raises(AllProxiesExhausted) as excinfo:
        await transport.fetch(TARGET)

    assert excinfo.value.url == TARGET
    assert [reason for _, reason in excinfo.value.attempts] == ["HTTP 500", "HTTP 403"]
    assert "HTTP 403" in str(excinfo.value)


@pytest.mark.asyncio
async def test_request_options_are_forwarded():
    session = make_session(response_cm())
    transport = ProxyTransport(proxies=["https://p1/"], session=session)
    options = RequestOptions(
        cookies="sid=1",
        authorization="Bearer t",
        raw_headers="X-Token: abc\nnot a header",
    )

    await transport.fetch(TARGET, options)

    headers = session.get.call_args.kwargs["headers"]
    assert headers["Cookie"] == "sid=1"
    assert headers["Authorization"] == "Bearer t"
    assert headers["X-Token"] == "abc"
    assert "User-Agent" in headers
    assert session.get.call_args.kwargs["allow_redirects"] is True


@pytest.mark.asyncio
async def test_fetch_direct_skips_proxies():
    session = make_session(response_cm(status=200, body=b"lib"))
    transport = ProxyTransport(proxies=["https://p1/"], session=session)

    response = await transport.fetch_direct("https://cdn.example.com/lib.js")

    assert response.body == b"lib"
    assert requested_urls(session) == ["https://cdn.example.com/lib.js"]


@pytest.mark.asyncio
async def test_fetch_direct_raises_on_error_status():
    session = make_session(response_cm(status=404, reason="Not Found"))
    transport = ProxyTransport(proxies=[], session=session)

    with pytest.raises(TransportError) as excinfo:
        await transport.fetch_direct("https://cdn.example.com/lib.js")

    assert excinfo.value.status == 404


@pytest.mark.asyncio
async def test_provided_session_is_not_closed():
    session = make_session()
    transport = ProxyTransport(session=session)

    await transport.close()

    session.close.assert_not_called()


def test_fetch_response_helpers():
    response = FetchResponse(
        url=TARGET,
        status=204,
        status_text="No Content",
        content_type="text/plain",
        body="héllo".encode("utf-8"),
    )

    assert response.ok
    assert response.size == 6
    assert response.text() == "héllo"

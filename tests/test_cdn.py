"""Tests for the Gemini backed CDN resolver."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from website_source.crawler.cdn import GeminiCdnResolver


def make_client(text):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=text))
    return client


@pytest.mark.asyncio
async def test_returns_stripped_answer():
    client = make_client("  https://cdn.jsdelivr.net/npm/lodash@4/lodash.min.js\n")
    resolver = GeminiCdnResolver(client=client, model="test-model")

    answer = await resolver.find_alternate_source("https://x.com/js/lodash.min.js")

    assert answer == "https://cdn.jsdelivr.net/npm/lodash@4/lodash.min.js"
    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert "lodash.min.js" in kwargs["contents"]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["NOT_FOUND", "", None])
async def test_no_answer(text):
    resolver = GeminiCdnResolver(client=make_client(text))

    assert await resolver.find_alternate_source("https://x.com/js/app.js") is None


@pytest.mark.asyncio
async def test_directory_url_is_not_looked_up():
    client = make_client("https://cdn.example.com/x.js")
    resolver = GeminiCdnResolver(client=client)

    assert await resolver.find_alternate_source("https://x.com/js/") is None
    client.aio.models.generate_content.assert_not_awaited()

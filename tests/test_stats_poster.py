from unittest.mock import AsyncMock

import aiohttp
import pytest

from kestrel.util import stats_poster


class FakeResponse:
    def __init__(self, status):
        self.status = status
        self.text = AsyncMock(return_value="body")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, status=200, error=None):
        self.status = status
        self.error = error
        self.requests = []

    def __call__(self, **kwargs):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def post(self, url, json, headers):
        if self.error is not None:
            raise self.error
        self.requests.append((url, json, headers))
        return FakeResponse(self.status)


@pytest.mark.asyncio
async def test_posts_server_count(monkeypatch):
    session = FakeSession()
    monkeypatch.setattr(stats_poster.aiohttp, "ClientSession", session)

    assert await stats_poster.post_server_count(42, 7, token="secret") is True
    assert session.requests == [
        ("https://top.gg/api/bots/42/stats", {"server_count": 7}, {"Authorization": "secret"}),
    ]


@pytest.mark.asyncio
async def test_non_200_is_logged_not_raised(monkeypatch):
    monkeypatch.setattr(stats_poster.aiohttp, "ClientSession", FakeSession(status=401))

    assert await stats_poster.post_server_count(42, 7, token="secret") is False


@pytest.mark.asyncio
async def test_network_error_is_contained(monkeypatch):
    monkeypatch.setattr(stats_poster.aiohttp, "ClientSession", FakeSession(error=aiohttp.ClientError("down")))

    assert await stats_poster.post_server_count(42, 7, token="secret") is False


@pytest.mark.asyncio
async def test_missing_token_skips_request(monkeypatch):
    session = FakeSession()
    monkeypatch.setattr(stats_poster.aiohttp, "ClientSession", session)
    monkeypatch.delenv("TOP_GG_TOKEN", raising=False)

    assert await stats_poster.post_server_count(42, 7) is False
    assert session.requests == []

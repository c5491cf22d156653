"""
Tests for HttpApiClient using httpx.MockTransport.
"""

import json

import httpx
import pytest

from healthsync.client.http_client import HttpApiClient


def _client(handler) -> HttpApiClient:
    transport = httpx.MockTransport(handler)
    return HttpApiClient(
        "http://api.test", client=httpx.AsyncClient(base_url="http://api.test", transport=transport)
    )


@pytest.mark.asyncio
async def test_sends_json_body_and_returns_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "v1"})

    client = _client(handler)

    assert await client.request(url="/api/vitals", method="post", data={"pulse": 60}) == {"id": "v1"}
    assert seen == {"method": "POST", "path": "/api/vitals", "body": {"pulse": 60}}


@pytest.mark.asyncio
async def test_empty_and_text_bodies():
    responses = iter([httpx.Response(204), httpx.Response(200, text="accepted")])
    client = _client(lambda request: next(responses))

    assert await client.request(url="/api/a", method="DELETE") is None
    assert await client.request(url="/api/b", method="PUT", data={}) == "accepted"


@pytest.mark.asyncio
async def test_error_status_raises():
    client = _client(lambda request: httpx.Response(500, json={"detail": "boom"}))

    with pytest.raises(httpx.HTTPStatusError):
        await client.request(url="/api/vitals", method="POST", data={})


@pytest.mark.asyncio
async def test_unreachable_backend_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)

    with pytest.raises(httpx.TransportError):
        await client.request(url="/api/vitals", method="POST", data={})


@pytest.mark.asyncio
async def test_owned_client_closed_on_exit():
    async with HttpApiClient("http://api.test") as client:
        inner = client._client  # pylint: disable=protected-access

    assert inner.is_closed is True


@pytest.mark.asyncio
async def test_injected_client_left_open():
    inner = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(204)))

    async with HttpApiClient("http://api.test", client=inner):
        pass

    assert inner.is_closed is False
    await inner.aclose()

"""Testes do cliente do gateway do protocolo (httpx.MockTransport)."""

from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from domain.dto.protocol import ConnectionUpdate, CredsUpdate, DisconnectReason, MessagesUpsert
from infra.auth_state.file_auth_state import AuthState
from infra.protocol.gateway_client import GatewayProtocolClient


def _ndjson(*events) -> bytes:
    return "".join(json.dumps(e) + "\n" for e in events).encode()


class GatewayStub:
    """Gateway em memória que registra as requisições recebidas."""

    def __init__(self, events_response: httpx.Response = None):
        self.requests: List[httpx.Request] = []
        self.events_response = events_response or httpx.Response(200, content=b"")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/sessions":
            return httpx.Response(200, json={"session_id": "s1"})
        if request.method == "GET" and path == "/sessions/s1/events":
            return self.events_response
        if request.method == "POST" and path == "/sessions/s1/messages":
            return httpx.Response(200, json={"key": {"id": "ABC"}})
        if request.method == "DELETE" and path == "/sessions/s1":
            return httpx.Response(204)
        return httpx.Response(404)


def _client(settings, stub: GatewayStub) -> GatewayProtocolClient:
    return GatewayProtocolClient(settings, transport=httpx.MockTransport(stub))


def _auth(creds=None) -> AuthState:
    return AuthState("acc1", creds, store=None)


async def _collect(session) -> list:
    return [event async for event in session.events()]


@pytest.mark.asyncio
async def test_open_sends_account_and_creds(settings):
    stub = GatewayStub()

    session = await _client(settings, stub).open("acc1", _auth({"me": {"id": "1"}}))

    assert session.session_id == "s1"
    assert session.account_id == "acc1"
    body = json.loads(stub.requests[0].content)
    assert body == {"account_id": "acc1", "creds": {"me": {"id": "1"}}}
    await session.close()


@pytest.mark.asyncio
async def test_open_failure_raises(settings):
    def handler(request):
        return httpx.Response(503, json={"error": "indisponível"})

    client = GatewayProtocolClient(settings, transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.HTTPStatusError):
        await client.open("acc1", _auth())


@pytest.mark.asyncio
async def test_events_are_parsed_in_order_and_stop_after_close(settings):
    stub = GatewayStub(httpx.Response(200, content=_ndjson(
        {"event": "connection.update", "data": {"qr": "2@abc"}},
        {"event": "creds.update", "data": {"creds": {"noiseKey": "x"}}},
        {"event": "presence.update", "data": {}},
        {"event": "messages.upsert", "data": {"messages": [
            {"key": {"remoteJid": "5511@s.whatsapp.net"}, "message": {"conversation": "oi"}}
        ]}},
        {"event": "connection.update",
         "data": {"connection": "close", "lastDisconnect": {"statusCode": 401}}},
        {"event": "connection.update", "data": {"connection": "open"}},
    )))
    session = await _client(settings, stub).open("acc1", _auth())

    events = await _collect(session)

    assert [type(e) for e in events] == [
        ConnectionUpdate, CredsUpdate, MessagesUpsert, ConnectionUpdate,
    ]
    assert events[0].qr == "2@abc"
    assert events[2].messages[0].message.get_text() == "oi"
    assert events[3].last_disconnect.status_code == DisconnectReason.LOGGED_OUT
    assert not events[3].is_recoverable_close()
    await session.close()


@pytest.mark.asyncio
async def test_invalid_lines_are_skipped(settings):
    stub = GatewayStub(httpx.Response(
        200,
        content=b"not json\n\n" + _ndjson({"event": "connection.update", "data": {"connection": "open"}}),
    ))
    session = await _client(settings, stub).open("acc1", _auth())

    events = await _collect(session)

    assert events[0].connection == "open"
    await session.close()


@pytest.mark.asyncio
async def test_stream_end_becomes_recoverable_close(settings):
    stub = GatewayStub(httpx.Response(200, content=_ndjson(
        {"event": "connection.update", "data": {"connection": "open"}},
    )))
    session = await _client(settings, stub).open("acc1", _auth())

    events = await _collect(session)

    last = events[-1]
    assert last.connection == "close"
    assert last.last_disconnect.status_code == DisconnectReason.CONNECTION_LOST
    assert last.is_recoverable_close()
    await session.close()


@pytest.mark.asyncio
async def test_stream_http_error_becomes_recoverable_close(settings):
    stub = GatewayStub(httpx.Response(500, content=b"erro"))
    session = await _client(settings, stub).open("acc1", _auth())

    events = await _collect(session)

    assert len(events) == 1
    assert events[0].is_recoverable_close()
    await session.close()


@pytest.mark.asyncio
async def test_send_text_posts_jid_and_content(settings):
    stub = GatewayStub()
    session = await _client(settings, stub).open("acc1", _auth())

    result = await session.send_text("5551234567@s.whatsapp.net", "hi")

    request = stub.requests[-1]
    assert request.url.path == "/sessions/s1/messages"
    assert json.loads(request.content) == {
        "jid": "5551234567@s.whatsapp.net",
        "content": {"text": "hi"},
    }
    assert result == {"key": {"id": "ABC"}}
    await session.close()


@pytest.mark.asyncio
async def test_close_deletes_session_once(settings):
    stub = GatewayStub()
    session = await _client(settings, stub).open("acc1", _auth())

    await session.close()
    await session.close()

    deletes = [r for r in stub.requests if r.method == "DELETE"]
    assert len(deletes) == 1

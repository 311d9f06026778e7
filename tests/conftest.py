import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from relayhub.connection import Connection
from relayhub.hub import Hub


def last_json(sent):
    assert sent, "No messages were sent"
    return json.loads(sent[-1])


def all_json(sent):
    return [json.loads(m) for m in sent]


def of_type(sent, msg_type):
    return [m for m in all_json(sent) if m.get("type") == msg_type]


class FakeWebSocket:
    # Minimal test double for a websockets connection.
    # - Accepts a list of incoming JSON-serializable messages (dicts) or raw JSON strings.
    # - Captures all outgoing messages via `send`.
    # - Supports `recv()` and `async for` iteration; running dry means a clean close.
    # - `fail_send=True` makes every send raise like a dropped peer.
    # - `hang=True` keeps the socket open after the last message until `close()`.
    def __init__(self, incoming=None, path="/ws/client", fail_send=False, error_after=False, hang=False):
        self._incoming = list(incoming or [])
        for i, m in enumerate(self._incoming):
            if isinstance(m, dict):
                self._incoming[i] = json.dumps(m)
        self.sent = []
        self._idx = 0
        self.fail_send = fail_send
        self.error_after = error_after
        self.hang = hang
        self._gate = asyncio.Event()
        self.closed = False
        self.close_code = None
        self.remote_address = ("127.0.0.1", 50000)
        self.request = type("Request", (), {"path": path})()

    async def send(self, payload: str):
        assert isinstance(payload, str), "send() must be called with a JSON string"
        if self.fail_send or self.closed:
            raise ConnectionClosedError(None, None)
        self.sent.append(payload)

    async def recv(self):
        if self._idx >= len(self._incoming):
            if self.hang:
                await self._gate.wait()
            if self.error_after:
                raise ConnectionClosedError(None, None)
            raise ConnectionClosedOK(None, None)
        item = self._incoming[self._idx]
        self._idx += 1
        await asyncio.sleep(0)
        return item

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return await self.recv()
        except ConnectionClosedOK:
            raise StopAsyncIteration

    async def close(self, code=1000, reason=""):
        self.closed = True
        self.close_code = code
        self._gate.set()


def connect(incoming=None, **kwargs):
    ws = FakeWebSocket(incoming, **kwargs)
    return ws, Connection(ws)


@pytest.fixture
def hub():
    return Hub()

import asyncio
import logging
from typing import AsyncIterator, Optional

from .models import Envelope

DEFAULT_SEND_TIMEOUT = 5.0


class Connection:
    """Outbound handle around one websocket.

    Any holder may call ``send``; only the owning session reads from it.
    Writes are serialized per connection and bounded by ``send_timeout``.
    """

    def __init__(self, ws, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self.ws = ws
        self.send_timeout = send_timeout
        self.close_task: Optional[asyncio.Task] = None
        self._send_lock = asyncio.Lock()

    @property
    def remote_address(self):
        return getattr(self.ws, "remote_address", None)

    async def send(self, text: str):
        async with self._send_lock:
            if self.send_timeout and self.send_timeout > 0:
                await asyncio.wait_for(self.ws.send(text), self.send_timeout)
            else:
                await self.ws.send(text)

    async def send_envelope(self, envelope: Envelope):
        # envelopes decoded from a peer go out as the exact text received
        await self.send(envelope.raw or envelope.to_json())

    async def receive(self) -> Envelope:
        raw = await self.ws.recv()
        logging.debug("← %s", raw)
        return Envelope.from_json(raw)

    async def envelopes(self) -> AsyncIterator[Envelope]:
        async for raw in self.ws:
            logging.debug("← %s", raw)
            yield Envelope.from_json(raw)

    async def close(self, code: int = 1000, reason: str = ""):
        await self.ws.close(code, reason)

    def close_soon(self, code: int = 1000, reason: str = "") -> asyncio.Task:
        # the closing handshake may take a while; nobody waits for it
        if self.close_task is None:
            self.close_task = asyncio.create_task(self.close(code, reason))
        return self.close_task

    def __repr__(self):
        return f"<Connection {self.remote_address}>"

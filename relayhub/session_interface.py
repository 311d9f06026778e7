import logging

from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from .connection import Connection
from .hub import Hub
from .models import CONTROL, LOG, STATE, Envelope, ProtocolError


class SessionInterface:
    tag = "SESSION"

    def __init__(self, hub: Hub, conn: Connection):
        self.hub = hub
        self.conn = conn

    async def on_connect(self) -> bool:
        return True

    async def on_close(self, reason: str):
        pass

    async def on_state(self, msg: Envelope):
        pass

    async def on_control(self, msg: Envelope):
        pass

    async def on_log(self, msg: Envelope):
        pass

    async def handle_message(self, msg: Envelope):
        if msg.type == STATE:
            await self.on_state(msg)
        elif msg.type == CONTROL:
            await self.on_control(msg)
        elif msg.type == LOG:
            await self.on_log(msg)
        else:
            logging.debug(f"[{self.tag}] ignoring message type {msg.type!r}")

    async def log(self, text: str, level: int = logging.INFO):
        logging.log(level, f"[{self.tag}] {text}")
        await self.hub.broadcast_log(text)

    async def run(self):
        """Drive the connection until it closes; transport and protocol errors end the session quietly."""
        reason = "connection closed"
        try:
            if await self.on_connect():
                async for msg in self.conn.envelopes():
                    await self.handle_message(msg)
        except (ConnectionClosedError, ConnectionClosedOK) as e:
            reason = str(e)
        except ProtocolError as e:
            reason = f"protocol error: {e}"
        finally:
            try:
                await self.on_close(reason)
            finally:
                await self.conn.close()

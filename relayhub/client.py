import logging

from .models import Envelope
from .session_interface import SessionInterface


class ClientSession(SessionInterface):
    tag = "CLIENT"

    async def on_connect(self) -> bool:
        count = await self.hub.add_client(self.conn)
        logging.info(f"[CLIENT] client connected {self.conn.remote_address}, sent {count} cached state(s)")
        return True

    async def on_control(self, msg: Envelope):
        if not msg.id or msg.state is None:
            logging.debug(f"[CLIENT] incomplete control message ignored: {msg.raw}")
            return
        if await self.hub.route_control(msg, self.conn):
            logging.info(f"[CLIENT] forward to device {msg.id}: {msg.state}")
        else:
            logging.info(f"[CLIENT] error: device {msg.id} not found")

    async def on_close(self, reason: str):
        await self.hub.remove_client(self.conn)
        logging.info(f"[CLIENT] client removed ({reason})")

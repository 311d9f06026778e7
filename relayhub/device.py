import logging
from typing import Optional

from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from .models import REGISTER, Envelope, ProtocolError
from .session_interface import SessionInterface


class DeviceSession(SessionInterface):
    """One connected device: register handshake, then state and log messages."""

    tag = "DEVICE"

    def __init__(self, hub, conn):
        super().__init__(hub, conn)
        self.device_id: Optional[str] = None

    async def on_connect(self) -> bool:
        try:
            msg = await self.conn.receive()
        except (ConnectionClosedError, ConnectionClosedOK) as e:
            await self.log(f"invalid register from device (read error): {e}", logging.WARNING)
            return False
        except ProtocolError as e:
            await self.log(f"invalid register from device (json or type/id): {e}", logging.WARNING)
            return False

        await self.log(f"raw register payload from device: {msg.raw}")
        if msg.type != REGISTER or not msg.id:
            await self.log(f"invalid register from device (json or type/id): {msg.raw}", logging.WARNING)
            return False

        device_id = msg.id
        registration = await self.hub.register_device(device_id, self.conn)
        self.device_id = device_id

        if registration.evicted:
            await self.log(f"device [{device_id}] reconnect: closing old connection")
        if registration.primed is not None:
            await self.log(f"send last state to device [{device_id}]: {registration.primed.to_json()}")
        await self.log(f"device connected: {device_id}")
        return True

    async def on_state(self, msg: Envelope):
        if msg.state is None:
            logging.debug(f"[DEVICE] state without payload from {self.device_id}, ignored")
            return
        await self.hub.update_state(self.device_id, msg.state)
        logging.info(f"[DEVICE] state saved and broadcast: {self.device_id} → {msg.state}")
        await self.hub.broadcast_log(f"state saved and broadcast: {self.device_id}")

    async def on_log(self, msg: Envelope):
        if msg.message:
            await self.log(f"[{self.device_id}] {msg.message}")

    async def on_close(self, reason: str):
        if self.device_id is None:
            return
        await self.log(f"device [{self.device_id}] disconnected: {reason}")
        if await self.hub.unregister_device(self.device_id, self.conn):
            await self.log(f"device removed: {self.device_id}")
        else:
            logging.info(f"[DEVICE] stale connection for {self.device_id} closed, newer one kept")

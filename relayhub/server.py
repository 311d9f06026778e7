import asyncio
import logging
from typing import Optional
from urllib.parse import urlsplit

from websockets import serve

from .client import ClientSession
from .connection import DEFAULT_SEND_TIMEOUT, Connection
from .device import DeviceSession
from .hub import Hub
from .static import StaticFiles

DEVICE_PATH = "/ws/device"
CLIENT_PATH = "/ws/client"

SESSIONS = {
    DEVICE_PATH: DeviceSession,
    CLIENT_PATH: ClientSession,
}


class RelayServer:
    def __init__(self, hub: Optional[Hub] = None, static: Optional[StaticFiles] = None,
                 send_timeout: float = DEFAULT_SEND_TIMEOUT, ping_interval: Optional[float] = 20.0):
        self.hub = hub or Hub()
        self.static = static
        self.send_timeout = send_timeout
        self.ping_interval = ping_interval
        self.server = None

    async def start(self, host: Optional[str] = None, port: int = 80):
        logging.info(f"Listening on ws://{host or '0.0.0.0'}:{port}/ (devices {DEVICE_PATH}, clients {CLIENT_PATH})")
        if self.static:
            logging.info(f"Serving static files from {self.static.directory}")
        self.server = await serve(
            self._handle_session,
            host,
            port,
            process_request=self.static.process_request if self.static else None,
            ping_interval=self.ping_interval,
        )
        await asyncio.Future()

    async def _handle_session(self, websocket):
        path = urlsplit(websocket.request.path).path
        session_cls = SESSIONS.get(path)
        if session_cls is None:
            logging.warning(f"Unknown websocket path {path} from {websocket.remote_address}")
            await websocket.close(code=1008, reason="Unknown path")
            return

        logging.info(f"CONNECTED {path} {websocket.remote_address}")
        session = session_cls(self.hub, Connection(websocket, self.send_timeout))
        try:
            await session.run()
        finally:
            logging.info(f"DISCONNECTED {path} {websocket.remote_address}")

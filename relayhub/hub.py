import asyncio
import logging
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from .connection import Connection
from .models import (
    DEVICE_NOT_FOUND,
    DeviceState,
    Envelope,
    control_message,
    error_message,
    log_message,
    state_message,
)


class Registration(NamedTuple):
    evicted: bool
    primed: Optional[Envelope]


class Hub:
    """Registry of live devices, their last known state and the UI clients.

    Every public coroutine holds ``_lock`` for its full duration, including the
    sends it performs, so hub-mediated messages reach each peer in lock order.
    """

    def __init__(self):
        self.devices: Dict[str, Connection] = {}
        self.device_states: Dict[str, DeviceState] = {}
        self.clients: Set[Connection] = set()
        self._lock = asyncio.Lock()

    async def register_device(self, device_id: str, conn: Connection) -> Registration:
        """Map ``device_id`` to ``conn`` and prime it with the cached state.

        A previous connection for the same id is closed. Returns whether one was
        evicted and the ``control`` envelope sent to prime the new one, if any.
        """
        async with self._lock:
            old = self.devices.get(device_id)
            evicted = old is not None and old is not conn
            if evicted:
                logging.info(f"[HUB] evicting {old!r} for device {device_id}")
                old.close_soon(1000, "replaced by newer connection")
            self.devices[device_id] = conn

            primed = None
            cached = self.device_states.get(device_id)
            if cached is not None:
                primed = control_message(device_id, cached)
                await self._send(conn, primed)
            return Registration(evicted, primed)

    async def last_state(self, device_id: str) -> Optional[DeviceState]:
        async with self._lock:
            return self.device_states.get(device_id)

    async def update_state(self, device_id: str, state: DeviceState):
        async with self._lock:
            state = state.with_id(device_id)
            self.device_states[device_id] = state
            await self._fan_out(state_message(device_id, state).to_json())

    async def route_control(self, envelope: Envelope, origin: Connection) -> bool:
        """Forward a control envelope to its device, or answer ``origin`` with an error."""
        async with self._lock:
            device = self.devices.get(envelope.id)
            if device is None:
                await self._send(origin, error_message(DEVICE_NOT_FOUND))
                return False
            await self._send(device, envelope)
            return True

    async def unregister_device(self, device_id: str, conn: Connection) -> bool:
        async with self._lock:
            if self.devices.get(device_id) is not conn:
                return False
            del self.devices[device_id]
            return True

    async def add_client(self, conn: Connection) -> int:
        """Add a UI client and send it one state message per cached device."""
        async with self._lock:
            self.clients.add(conn)
            for device_id, state in self.device_states.items():
                await self._send(conn, state_message(device_id, state))
            return len(self.device_states)

    async def remove_client(self, conn: Connection):
        async with self._lock:
            self.clients.discard(conn)

    async def snapshot_states(self) -> List[Tuple[str, DeviceState]]:
        async with self._lock:
            return list(self.device_states.items())

    async def broadcast_log(self, text: str):
        async with self._lock:
            await self._fan_out(log_message(text).to_json())

    async def _fan_out(self, text: str):
        clients = list(self.clients)
        if not clients:
            return
        results = await asyncio.gather(*(c.send(text) for c in clients), return_exceptions=True)
        for conn, result in zip(clients, results):
            if isinstance(result, BaseException):
                logging.debug(f"[HUB] send to {conn!r} failed: {result!r}")

    @staticmethod
    async def _send(conn: Connection, envelope: Envelope):
        try:
            await conn.send_envelope(envelope)
        except Exception as e:
            logging.debug(f"[HUB] send to {conn!r} failed: {e!r}")

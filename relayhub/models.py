import json
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple, Union

REGISTER = "register"
STATE = "state"
CONTROL = "control"
LOG = "log"
ERROR = "error"

MESSAGE_TYPES = (REGISTER, STATE, CONTROL, LOG, ERROR)

DEVICE_NOT_FOUND = "Device not found"

U8 = (0, 255)
I32 = (-2 ** 31, 2 ** 31 - 1)


class ProtocolError(ValueError):
    pass


def _int(name: str, value: Any, bounds: Tuple[int, int]) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"{name}: expected integer, got {value!r}")
    lo, hi = bounds
    if not lo <= value <= hi:
        raise ProtocolError(f"{name}: {value} out of range [{lo}, {hi}]")
    return value


def _bool(name: str, value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ProtocolError(f"{name}: expected bool, got {value!r}")
    return value


def _tuple(name: str, value: Any, size: int, bounds: Tuple[int, int]) -> Tuple[int, ...]:
    # short arrays are zero-padded, long ones truncated
    if value is None:
        return (0,) * size
    if not isinstance(value, list):
        raise ProtocolError(f"{name}: expected array, got {value!r}")
    items = [_int(f"{name}[{i}]", v, bounds) for i, v in enumerate(value[:size])]
    return tuple(items + [0] * (size - len(items)))


def _str(name: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ProtocolError(f"{name}: expected string, got {value!r}")
    return value


@dataclass(frozen=True)
class DeviceState:
    id: str = ""
    power: bool = False
    color: Tuple[int, int, int] = (0, 0, 0)
    brightness: int = 0
    auto_brightness: bool = False
    position: Tuple[int, int, int] = (0, 0, 0)
    auto_position: bool = False
    distance: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "DeviceState":
        if not isinstance(data, dict):
            raise ProtocolError(f"state: expected object, got {data!r}")
        distance = data.get("distance")
        if distance is not None:
            if isinstance(distance, bool) or not isinstance(distance, (int, float)):
                raise ProtocolError(f"distance: expected number, got {distance!r}")
            try:
                distance = float(distance)
            except (OverflowError, ValueError) as e:
                raise ProtocolError(f"distance: {e}") from e
            if not math.isfinite(distance):
                raise ProtocolError(f"distance: {distance} is not a finite number")
        return cls(
            id=_str("state.id", data.get("id")),
            power=_bool("power", data.get("power")),
            color=_tuple("color", data.get("color"), 3, U8),
            brightness=_int("brightness", data.get("brightness"), U8),
            auto_brightness=_bool("auto_brightness", data.get("auto_brightness")),
            position=_tuple("position", data.get("position"), 3, I32),
            auto_position=_bool("auto_position", data.get("auto_position")),
            distance=distance,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "id": self.id,
            "power": self.power,
            "color": list(self.color),
            "brightness": self.brightness,
            "auto_brightness": self.auto_brightness,
            "position": list(self.position),
            "auto_position": self.auto_position,
        }
        if self.distance is not None:
            out["distance"] = self.distance
        return out

    def with_id(self, device_id: str) -> "DeviceState":
        return replace(self, id=device_id)


@dataclass
class Envelope:
    """One JSON message on either websocket endpoint.

    ``raw`` keeps the text the envelope was decoded from so a ``control``
    message can be handed to the device exactly as the UI sent it.
    """

    type: str
    id: str = ""
    state: Optional[DeviceState] = None
    message: str = ""
    raw: Optional[str] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "Envelope":
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ProtocolError(f"invalid utf-8: {e}") from e
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ProtocolError(f"invalid json: {e}") from e
        if not isinstance(data, dict):
            raise ProtocolError(f"expected object, got {type(data).__name__}")

        state = data.get("state")
        return cls(
            type=_str("type", data.get("type")),
            id=_str("id", data.get("id")),
            state=DeviceState.from_dict(state) if state is not None else None,
            message=_str("message", data.get("message")),
            raw=raw,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type}
        if self.id:
            out["id"] = self.id
        if self.state is not None:
            out["state"] = self.state.to_dict()
        if self.message:
            out["message"] = self.message
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), allow_nan=False)


def state_message(device_id: str, state: DeviceState) -> Envelope:
    return Envelope(STATE, id=device_id, state=state.with_id(device_id))


def control_message(device_id: str, state: DeviceState) -> Envelope:
    # priming message: the cached state goes back to the device, id in the state only
    return Envelope(CONTROL, state=state.with_id(device_id))


def log_message(text: str) -> Envelope:
    return Envelope(LOG, message=text)


def error_message(text: str) -> Envelope:
    return Envelope(ERROR, message=text)

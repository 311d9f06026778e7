import argparse
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

DEFAULT_ADDR = ":80"
DEFAULT_STATIC = "client/dist"
DEFAULT_SEND_TIMEOUT = 5.0
DEFAULT_PING_INTERVAL = 20.0


@dataclass(frozen=True)
class Settings:
    host: Optional[str]
    port: int
    static_dir: str
    send_timeout_s: float
    ping_interval_s: Optional[float]
    debug: bool


def parse_addr(addr: str) -> Tuple[Optional[str], int]:
    """Split ``host:port``; an empty host means every interface."""
    host, sep, port = addr.strip().rpartition(":")
    if not sep:
        raise ValueError(f"address {addr!r} must be host:port")
    host = host.strip("[]")
    return (host or None), int(port)


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    try:
        v = environ.get(key)
        if v is None or v == "":
            return float(default)
        return float(v)
    except ValueError:
        return float(default)


def _env_bool(environ: Mapping[str, str], key: str) -> bool:
    return str(environ.get(key) or "").strip().lower() in ("1", "true", "yes", "on")


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Websocket relay between IoT devices and browser clients")
    parser.add_argument("-addr", "--addr", default=environ.get("RELAY_ADDR") or DEFAULT_ADDR,
                        help="listen address, host:port")
    parser.add_argument("-static", "--static", default=environ.get("RELAY_STATIC") or DEFAULT_STATIC,
                        help="path to the built UI bundle")
    parser.add_argument("--send-timeout", type=float,
                        default=_env_float(environ, "RELAY_SEND_TIMEOUT", DEFAULT_SEND_TIMEOUT),
                        help="seconds before a send to one peer is abandoned")
    parser.add_argument("--ping-interval", type=float,
                        default=_env_float(environ, "RELAY_PING_INTERVAL", DEFAULT_PING_INTERVAL),
                        help="websocket keepalive interval in seconds, 0 disables")
    parser.add_argument("--debug", action="store_true", default=_env_bool(environ, "RELAY_DEBUG"))
    return parser


def load_settings(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    environ = os.environ if environ is None else environ
    parser = build_parser(environ)
    args = parser.parse_args(argv)
    try:
        host, port = parse_addr(args.addr)
    except ValueError as e:
        parser.error(str(e))

    return Settings(
        host=host,
        port=port,
        static_dir=args.static,
        send_timeout_s=max(0.0, args.send_timeout),
        ping_interval_s=args.ping_interval if args.ping_interval > 0 else None,
        debug=bool(args.debug),
    )

import asyncio
import logging
import sys

from relayhub.hub import Hub
from relayhub.server import RelayServer
from relayhub.settings import load_settings
from relayhub.static import StaticFiles


async def main(settings):
    server = RelayServer(
        hub=Hub(),
        static=StaticFiles(settings.static_dir),
        send_timeout=settings.send_timeout_s,
        ping_interval=settings.ping_interval_s,
    )
    await server.start(settings.host, settings.port)


def run(argv=None):
    settings = load_settings(argv)
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="[%(asctime)s] [%(levelname)s] %(message)s",
    )
    try:
        asyncio.run(main(settings))
    except OSError as e:
        logging.critical(f"cannot listen on {settings.host or ''}:{settings.port}: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

import asyncio
import email.utils
import http
import logging
import mimetypes
import os
from typing import Optional
from urllib.parse import unquote, urlsplit

from websockets.datastructures import Headers
from websockets.http11 import Request, Response

WS_PREFIX = "/ws/"
STATIC_PREFIX = "/static/"
INDEX = "index.html"


def http_response(status: http.HTTPStatus, body: bytes, content_type: str) -> Response:
    headers = Headers([
        ("Date", email.utils.formatdate(usegmt=True)),
        ("Connection", "close"),
        ("Content-Length", str(len(body))),
        ("Content-Type", content_type),
    ])
    return Response(status.value, status.phrase, headers, body)


def not_found() -> Response:
    return http_response(http.HTTPStatus.NOT_FOUND, b"404 page not found\n", "text/plain; charset=utf-8")


class StaticFiles:
    """Serves the built UI bundle on the websocket port.

    Requests under ``/ws/`` continue to the websocket handshake. ``/static/``
    only serves existing files; every other path falls back to ``index.html``.
    """

    def __init__(self, directory: str):
        self.directory = os.path.realpath(directory)

    def resolve(self, url_path: str) -> Optional[str]:
        rel = unquote(url_path).lstrip("/")
        full = os.path.realpath(os.path.join(self.directory, rel))
        if full != self.directory and not full.startswith(self.directory + os.sep):
            return None
        if not os.path.isfile(full):
            return None
        return full

    def file_response(self, path: str) -> Response:
        with open(path, "rb") as f:
            body = f.read()
        content_type, _ = mimetypes.guess_type(path)
        return http_response(http.HTTPStatus.OK, body, content_type or "application/octet-stream")

    def serve(self, url_path: str) -> Response:
        path = self.resolve(url_path)
        if path is not None:
            return self.file_response(path)
        if url_path.startswith(STATIC_PREFIX):
            return not_found()
        index = self.resolve(INDEX)
        if index is None:
            return not_found()
        return self.file_response(index)

    async def process_request(self, connection, request: Request) -> Optional[Response]:
        url_path = urlsplit(request.path).path or "/"
        if url_path.startswith(WS_PREFIX):
            return None
        logging.debug(f"[HTTP] GET {url_path}")
        # file reads stay off the event loop
        return await asyncio.to_thread(self.serve, url_path)

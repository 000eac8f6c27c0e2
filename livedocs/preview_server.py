"""Static HTTP server for live preview of the output folder.

The output folder is mounted under the site's base URL, so the absolute
links written into pages resolve the same way they will once deployed.
The server runs on a background thread while the watcher keeps rebuilding.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from functools import partial
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


def mount_point(base_url: str | None) -> str:
    """Normalize a base URL to ``/segment`` form, or ``""`` for the root."""
    trimmed = (base_url or "").strip("/")
    return f"/{trimmed}" if trimmed else ""


def strip_base_url(path: str, base_url: str) -> str | None:
    """Return the request path relative to ``base_url``, or None outside it."""
    if not base_url:
        return path
    if not path.startswith(base_url):
        return None
    rest = path[len(base_url):]
    if not rest:
        return "/"
    if rest[0] == "/":
        return rest
    if rest[0] in "?#":
        return "/" + rest
    return None


class PreviewRequestHandler(SimpleHTTPRequestHandler):
    """Serve files from the output folder below the site base URL."""

    extensions_map = {
        **SimpleHTTPRequestHandler.extensions_map,
        ".html": "text/html; charset=utf-8",
        ".css": "text/css; charset=utf-8",
        ".js": "application/javascript; charset=utf-8",
        ".json": "application/json; charset=utf-8",
        ".svg": "image/svg+xml",
    }

    def __init__(self, *args: Any, base_url: str = "", **kwargs: Any) -> None:
        # The base class handles the request inside __init__.
        self.base_url = base_url
        super().__init__(*args, **kwargs)

    def send_head(self):
        if strip_base_url(self.path, self.base_url) is None:
            self.send_error(HTTPStatus.NOT_FOUND, f"Not under {self.base_url}/")
            return None
        return super().send_head()

    def translate_path(self, path: str) -> str:
        relative = strip_base_url(path, self.base_url)
        return super().translate_path(path if relative is None else relative)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


def make_request_handler(directory: Path, base_url: str = "") -> Callable[..., PreviewRequestHandler]:
    return partial(PreviewRequestHandler, directory=str(directory), base_url=mount_point(base_url))


class _PreviewHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


@dataclass(slots=True)
class PreviewServerHandle:
    server: ThreadingHTTPServer
    thread: threading.Thread
    host: str
    port: int
    base_url: str = ""

    @property
    def url(self) -> str:
        url_host = "127.0.0.1" if self.host in {"0.0.0.0", ""} else self.host
        return f"http://{url_host}:{self.port}{self.base_url}/"


def _bind(host: str, port: int, handler: Callable[..., Any], max_attempts: int) -> _PreviewHTTPServer:
    error: OSError | None = None
    for candidate in range(port, port + max_attempts + 1):
        try:
            server = _PreviewHTTPServer((host, candidate), handler)
        except OSError as exc:
            logger.debug("Port %d unavailable: %s", candidate, exc)
            error = exc
            continue
        if candidate != port:
            logger.info("Port %d is busy; serving on %d instead", port, candidate)
        return server
    raise error or OSError("Unable to bind preview server to the requested port range")


def _serve(server: ThreadingHTTPServer) -> None:
    try:
        server.serve_forever()
    except Exception:
        logger.exception("Preview server stopped unexpectedly")


def start_preview(
    directory: Path,
    *,
    host: str = "127.0.0.1",
    port: int = 8080,
    base_url: str | None = None,
    max_attempts: int = 20,
) -> PreviewServerHandle:
    """Serve ``directory`` under ``base_url`` from a background thread.

    When ``port`` is taken the following ports are tried, up to
    ``max_attempts`` more. Pass the returned handle to :func:`stop_preview`.
    """
    mount = mount_point(base_url)
    server = _bind(host, port, make_request_handler(directory.resolve(), mount), max_attempts)
    raw_host, bound_port = server.server_address[:2]
    bound_host = raw_host.decode("utf-8", "ignore") if isinstance(raw_host, bytes) else str(raw_host)
    thread = threading.Thread(target=_serve, args=(server,), daemon=True, name="preview-server")
    thread.start()
    return PreviewServerHandle(server=server, thread=thread, host=bound_host, port=int(bound_port), base_url=mount)


def stop_preview(handle: PreviewServerHandle | None) -> None:
    """Stop a server started by :func:`start_preview`."""
    if handle is None:
        return
    try:
        handle.server.shutdown()
    finally:
        handle.server.server_close()
    handle.thread.join(timeout=2.0)

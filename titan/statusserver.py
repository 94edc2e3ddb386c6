"""HTTP status server exposing the metrics endpoint."""

from __future__ import annotations

import logging
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Tuple

from titan.metrics import REGISTRY, Registry

logger = logging.getLogger(__name__)

_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
_GRACEFUL_TIMEOUT = 1.0


class ServerClosedError(RuntimeError):
    """Raised when serving is requested on a server that was stopped."""


class _Handler(BaseHTTPRequestHandler):
    server: "_HTTPServer"

    def handle(self) -> None:
        self.server.enter_request()
        try:
            super().handle()
        finally:
            self.server.leave_request()

    def do_GET(self) -> None:  # noqa: N802 - http.server naming
        if self.path.split("?", 1)[0] != "/metrics":
            self.send_error(404)
            return
        body = self.server.registry.expose().encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", _CONTENT_TYPE)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        logger.debug("status request: " + format, *args)


class _HTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    block_on_close = False

    def __init__(self, sock: socket.socket, registry: Registry) -> None:
        address = sock.getsockname()[:2]
        super().__init__(address, _Handler, bind_and_activate=False)
        self.socket.close()
        self.socket = sock
        self.server_address = address
        self.server_name = str(address[0])
        self.server_port = address[1]
        self.registry = registry
        self._active = 0
        self._idle = threading.Condition()

    def enter_request(self) -> None:
        with self._idle:
            self._active += 1

    def leave_request(self) -> None:
        with self._idle:
            self._active -= 1
            self._idle.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout)


def _split_address(addr: str) -> Tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    host = host.strip("[]")
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {addr!r}") from None


class StatusServer:
    """Serves ``/metrics`` over HTTP."""

    def __init__(self, addr: str, registry: Optional[Registry] = None) -> None:
        self.addr = addr
        self.registry = REGISTRY if registry is None else registry
        self._lock = threading.Lock()
        self._httpd: Optional[_HTTPServer] = None
        self._closed = False

    def serve(self, sock: socket.socket) -> None:
        """Serve requests on a listening socket until the server is stopped."""
        with self._lock:
            if self._closed:
                sock.close()
                raise ServerClosedError("status server closed")
            httpd = _HTTPServer(sock, self.registry)
            self._httpd = httpd
        logger.info("status server start addr=%s", self.addr)
        try:
            httpd.serve_forever(poll_interval=0.05)
        finally:
            httpd.server_close()

    def listen_and_serve(self, addr: str) -> None:
        """Listen on ``host:port`` and serve until stopped."""
        host, port = _split_address(addr)
        try:
            sock = socket.create_server((host, port))
        except OSError:
            logger.error("status server listen failed addr=%s", self.addr)
            raise
        self.serve(sock)

    def _shutdown(self) -> Optional[_HTTPServer]:
        with self._lock:
            self._closed = True
            httpd = self._httpd
        if httpd is not None:
            httpd.shutdown()
        return httpd

    def stop(self) -> None:
        """Close the listener at once."""
        logger.info("status server stop addr=%s", self.addr)
        self._shutdown()
        logger.info("status server stop success addr=%s", self.addr)

    def graceful_stop(self) -> None:
        """Stop accepting and wait briefly for requests in flight to finish."""
        logger.info("status server graceful stop addr=%s", self.addr)
        httpd = self._shutdown()
        if httpd is not None and not httpd.wait_idle(_GRACEFUL_TIMEOUT):
            logger.error("status server graceful stop failed addr=%s", self.addr)
            raise TimeoutError("requests still in flight after graceful stop timeout")
        logger.info("status server graceful stop success addr=%s", self.addr)
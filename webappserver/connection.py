"""Serving the HTTP requests that arrive on one client connection."""

from __future__ import annotations

import contextlib
import logging
import queue
import socket
import ssl
import threading
from typing import BinaryIO

from .config import Settings
from .handler import HttpRequestHandler
from .request import HttpRequest, RequestStatus
from .response import HttpResponse

log = logging.getLogger(__name__)

_ENTITY_TOO_LARGE = b"HTTP/1.1 413 entity too large\r\nConnection: close\r\n\r\n413 Entity too large\r\n"
_BAD_REQUEST = b"HTTP/1.1 400 bad request\r\nConnection: close\r\n\r\n400 Bad request\r\n"

_DEFAULT_READ_TIMEOUT = 10000


def _send_error(stream: BinaryIO, message: bytes) -> None:
    with contextlib.suppress(OSError, ValueError):
        stream.write(message)
        stream.flush()


def _peer_address(sock: socket.socket) -> str:
    try:
        peer = sock.getpeername()
    except OSError:
        return ""
    if isinstance(peer, tuple):
        return str(peer[0])
    return str(peer)


class HttpConnectionHandler:
    """Processes the connections handed to it, one after the other, in its own thread.

    Requests on one connection are read and answered in order (pipelining is
    supported).  The setting ``readTimeout`` (milliseconds, default 10000)
    limits the time to wait for data from the client; a value of 0 or less
    waits forever.  If ``ssl_context`` is given, connections are encrypted.
    """

    def __init__(
        self,
        settings: Settings,
        request_handler: HttpRequestHandler,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self._settings = settings
        self._request_handler = request_handler
        self._ssl_context = ssl_context
        self._busy = False
        self._closed = False
        self._connections: queue.Queue[socket.socket | None] = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="http-connection", daemon=True)
        self._thread.start()
        log.debug("HttpConnectionHandler (%x): constructed", id(self))

    def __repr__(self) -> str:
        return f"HttpConnectionHandler(busy={self._busy}, closed={self._closed})"

    def is_busy(self) -> bool:
        """Return True while this handler is in use."""
        return self._busy

    def set_busy(self) -> None:
        """Mark this handler as in use."""
        self._busy = True

    def handle_connection(self, sock: socket.socket) -> None:
        """Start serving an accepted connection in the handler's thread."""
        if self._closed:
            raise RuntimeError("the connection handler has been closed")
        log.debug("HttpConnectionHandler (%x): handle new connection", id(self))
        self._busy = True
        self._connections.put(sock)

    def close(self) -> None:
        """Finish the pending connections and stop the handler's thread."""
        if self._closed:
            return
        self._closed = True
        self._connections.put(None)
        if threading.current_thread() is not self._thread:
            self._thread.join()
        log.debug("HttpConnectionHandler (%x): thread stopped", id(self))

    # ----------------------------------------------------------------- thread

    def _run(self) -> None:
        while True:
            sock = self._connections.get()
            if sock is None:
                break
            self._serve_socket(sock)

    def _read_timeout(self) -> float | None:
        timeout = self._settings.get_int("readTimeout", _DEFAULT_READ_TIMEOUT)
        return timeout / 1000 if timeout > 0 else None

    def _serve_socket(self, sock: socket.socket) -> None:
        try:
            peer_address = _peer_address(sock)
            sock.settimeout(self._read_timeout())
            if self._ssl_context is not None:
                log.debug("HttpConnectionHandler (%x): Starting encryption", id(self))
                sock = self._ssl_context.wrap_socket(sock, server_side=True)
            with sock.makefile("rwb") as stream:
                self.process(stream, peer_address)
        except OSError as error:
            log.debug("HttpConnectionHandler (%x): connection error: %s", id(self), error)
        except Exception:
            log.exception("HttpConnectionHandler (%x): error while serving a connection", id(self))
        finally:
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            with contextlib.suppress(OSError):
                sock.close()
            log.debug("HttpConnectionHandler (%x): disconnected", id(self))
            self._busy = False

    # -------------------------------------------------------------- protocol

    def process(self, stream: BinaryIO, peer_address: str = "") -> None:
        """Read and answer requests from ``stream`` until the connection must close.

        Returns when the client sends no more data, when a request is broken
        or too large (answered with 400 or 413), when reading times out, or
        when a response requires the connection to be closed.
        """
        while True:
            with HttpRequest(self._settings) as request:
                try:
                    status = request.read_from(stream, peer_address)
                except OSError as error:
                    log.debug("HttpConnectionHandler (%x): read failed: %s", id(self), error)
                    return
                if status is RequestStatus.ABORT_SIZE:
                    _send_error(stream, _ENTITY_TOO_LARGE)
                    return
                if status is RequestStatus.ABORT_BROKEN:
                    _send_error(stream, _BAD_REQUEST)
                    return
                if status is not RequestStatus.COMPLETE:
                    return
                if not self._answer(request, stream):
                    return

    def _answer(self, request: HttpRequest, stream: BinaryIO) -> bool:
        """Let the request handler answer; return True if the connection stays open."""
        log.debug("HttpConnectionHandler (%x): received request", id(self))
        response = HttpResponse(stream)
        close_connection = request.get_header(b"Connection").lower() == b"close"
        if close_connection:
            response.set_header(b"Connection", b"close")
        elif request.version.lower() == b"http/1.0":
            # HTTP 1.0 does not support chunked mode.
            close_connection = True
            response.set_header(b"Connection", b"close")

        try:
            self._request_handler.service(request, response)
        except Exception:
            log.exception("HttpConnectionHandler (%x): An uncaught exception occurred in the request handler", id(self))

        if not response.has_sent_last_part:
            response.write(b"", True)
        log.debug("HttpConnectionHandler (%x): finished request", id(self))

        if not close_connection:
            headers = response.headers
            if headers.get(b"Connection", b"").lower() == b"close":
                close_connection = True
            elif b"Content-Length" not in headers:
                # Without a length and without chunks only closing marks the end.
                if headers.get(b"Transfer-Encoding", b"").lower() != b"chunked":
                    close_connection = True

        return not close_connection and response.is_connected


__all__ = ["HttpConnectionHandler"]
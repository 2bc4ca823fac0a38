"""Accepting TCP connections and passing them to connection handlers."""

from __future__ import annotations

import contextlib
import logging
import socket
import threading

from .config import Settings
from .handler import HttpRequestHandler
from .pool import HttpConnectionHandlerPool

log = logging.getLogger(__name__)

_TOO_MANY_CONNECTIONS = b"HTTP/1.1 503 too many connections\r\nConnection: close\r\n\r\nToo many connections\r\n"
_POLL_INTERVAL = 0.2


class HttpListener:
    """Listens for connections and serves their requests with ``request_handler``.

    Settings: ``host`` (optional; default all interfaces) and ``port``; the
    other settings are those of the connection handler pool.  Listening
    starts on construction.  Close the listener before discarding the request
    handler.
    """

    def __init__(self, settings: Settings, request_handler: HttpRequestHandler) -> None:
        self._settings = settings
        self._request_handler = request_handler
        self._pool: HttpConnectionHandlerPool | None = None
        self._socket: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self.listen()

    def __repr__(self) -> str:
        return f"HttpListener(listening={self.is_listening})"

    @property
    def is_listening(self) -> bool:
        """True while the listener accepts connections."""
        return self._socket is not None

    @property
    def address(self) -> tuple[str, int]:
        """The (host, port) the listener is bound to."""
        if self._socket is None:
            raise RuntimeError("the listener is not listening")
        name = self._socket.getsockname()
        return str(name[0]), int(name[1])

    def listen(self) -> None:
        """Start listening, also after close().  Raises OSError if binding fails."""
        if self._socket is not None:
            return
        if self._pool is None:
            self._pool = HttpConnectionHandlerPool(self._settings, self._request_handler)
        host = self._settings.get_str("host", "")
        port = self._settings.get_int("port", 0) & 0xFFFF
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        try:
            server = socket.create_server((host, port), family=family)
        except OSError as error:
            log.critical("HttpListener: Cannot bind on port %i: %s", port, error)
            self._pool.close()
            self._pool = None
            raise
        server.settimeout(_POLL_INTERVAL)
        self._socket = server
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._accept_loop, args=(server,), name="http-listener", daemon=True)
        self._thread.start()
        log.debug("HttpListener: Listening on port %i", self.address[1])

    def close(self) -> None:
        """Stop listening, wait until pending requests are processed, then close the pool."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        log.debug("HttpListener: closed")
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    def __enter__(self) -> HttpListener:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _accept_loop(self, server: socket.socket) -> None:
        while not self._stop_event.is_set():
            try:
                connection, _ = server.accept()
            except TimeoutError:
                continue
            except OSError as error:
                if self._stop_event.is_set():
                    break
                log.warning("HttpListener: accept failed: %s", error)
                continue
            self._dispatch(connection)

    def _dispatch(self, connection: socket.socket) -> None:
        pool = self._pool
        handler = pool.get_connection_handler() if pool is not None else None
        if handler is not None:
            try:
                handler.handle_connection(connection)
                return
            except RuntimeError:
                log.debug("HttpListener: connection handler already closed")
        log.debug("HttpListener: Too many incoming connections")
        self._reject(connection)

    @staticmethod
    def _reject(connection: socket.socket) -> None:
        with contextlib.suppress(OSError):
            connection.settimeout(1.0)
            connection.sendall(_TOO_MANY_CONNECTIONS)
            connection.shutdown(socket.SHUT_WR)
        with contextlib.suppress(OSError):
            connection.close()


__all__ = ["HttpListener"]
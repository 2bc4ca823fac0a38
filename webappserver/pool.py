"""A pool of connection handlers that grows and shrinks on demand."""

from __future__ import annotations

import logging
import ssl
import threading

from .config import Settings
from .connection import HttpConnectionHandler
from .handler import HttpRequestHandler

log = logging.getLogger(__name__)


def _check_readable(path: str, setting: str) -> None:
    try:
        with open(path, "rb"):
            pass
    except OSError as error:
        log.critical("HttpConnectionHandlerPool: cannot open %s %s", setting, path)
        raise OSError(error.errno, f"cannot open {setting}", path) from error


def load_ssl_context(settings: Settings) -> ssl.SSLContext | None:
    """Build the SSL context from the settings, or return None if SSL is not configured.

    SSL is used when both ``sslKeyFile`` and ``sslCertFile`` are set (PEM
    files, relative to the settings file).  ``caCertFile`` optionally names a
    CA certificate used to verify clients, and ``verifyPeer`` enables that
    verification.  Raises OSError if a configured file cannot be read.
    """
    key_file = settings.get_str("sslKeyFile", "")
    cert_file = settings.get_str("sslCertFile", "")
    ca_file = settings.get_str("caCertFile", "")
    verify_peer = settings.get_bool("verifyPeer", False)
    if not key_file or not cert_file:
        return None

    key_file = settings.resolve_path(key_file)
    cert_file = settings.resolve_path(cert_file)
    _check_readable(cert_file, "sslCertFile")
    _check_readable(key_file, "sslKeyFile")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(cert_file, key_file)

    if ca_file:
        ca_file = settings.resolve_path(ca_file)
        _check_readable(ca_file, "caCertFile")
        context.load_verify_locations(cafile=ca_file)

    if verify_peer:
        if not ca_file:
            context.load_default_certs(ssl.Purpose.CLIENT_AUTH)
        context.verify_mode = ssl.CERT_REQUIRED
    else:
        context.verify_mode = ssl.CERT_NONE

    log.debug("HttpConnectionHandlerPool: SSL settings loaded")
    return context


class HttpConnectionHandlerPool:
    """Hands out free connection handlers, creating new ones up to a limit.

    Settings: ``maxThreads`` (default 100) limits the number of handlers,
    ``minThreads`` (default 1) is the number of idle handlers kept, and
    ``cleanupInterval`` in milliseconds (default 1000) is how often one
    surplus idle handler is closed; a non-positive interval disables the
    periodic cleanup.  The SSL settings are described in
    :func:`load_ssl_context`.
    """

    def __init__(self, settings: Settings, request_handler: HttpRequestHandler) -> None:
        self._settings = settings
        self._request_handler = request_handler
        self._ssl_context = load_ssl_context(settings)
        self._handlers: list[HttpConnectionHandler] = []
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        interval = settings.get_int("cleanupInterval", 1000)
        if interval > 0:
            self._thread = threading.Thread(
                target=self._run, args=(interval / 1000,), name="pool-cleanup", daemon=True
            )
            self._thread.start()

    def __repr__(self) -> str:
        return f"HttpConnectionHandlerPool(size={self.size})"

    def _run(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            self.cleanup()

    @property
    def size(self) -> int:
        """The number of handlers in the pool."""
        with self._lock:
            return len(self._handlers)

    def get_connection_handler(self) -> HttpConnectionHandler | None:
        """Return a free handler, marked busy, or None if the pool is exhausted."""
        with self._lock:
            for handler in self._handlers:
                if not handler.is_busy():
                    handler.set_busy()
                    return handler
            if len(self._handlers) < self._settings.get_int("maxThreads", 100):
                handler = HttpConnectionHandler(self._settings, self._request_handler, self._ssl_context)
                handler.set_busy()
                self._handlers.append(handler)
                return handler
        return None

    def cleanup(self) -> None:
        """Close one idle handler if more than ``minThreads`` are idle."""
        max_idle = self._settings.get_int("minThreads", 1)
        idle = 0
        with self._lock:
            for handler in self._handlers:
                if handler.is_busy():
                    continue
                idle += 1
                if idle > max_idle:
                    self._handlers.remove(handler)
                    handler.close()
                    log.debug(
                        "HttpConnectionHandlerPool: Removed connection handler, pool size is now %i",
                        len(self._handlers),
                    )
                    break

    def close(self) -> None:
        """Stop the cleanup and close all handlers, waiting for their connections."""
        self._stop_event.set()
        if self._thread is not None and threading.current_thread() is not self._thread:
            self._thread.join()
        self._thread = None
        with self._lock:
            handlers = list(self._handlers)
            self._handlers.clear()
        for handler in handlers:
            handler.close()
        log.debug("HttpConnectionHandlerPool: closed")


__all__ = ["HttpConnectionHandlerPool", "load_ssl_context"]
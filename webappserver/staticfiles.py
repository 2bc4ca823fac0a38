"""Delivery of static files from a document root, with an in-memory cache."""

from __future__ import annotations

import logging
import os
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from functools import partial
from typing import Generic, TypeVar

from .config import Settings
from .handler import HttpRequestHandler
from .request import HttpRequest
from .response import HttpResponse

log = logging.getLogger(__name__)

_BLOCK_SIZE = 65536

_K = TypeVar("_K")
_V = TypeVar("_V")

_FIXED_TYPES = (
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".gif", "image/gif"),
    (".pdf", "application/pdf"),
)

_OTHER_TYPES = (
    (".css", "text/css"),
    (".js", "text/javascript"),
    (".svg", "image/svg+xml"),
    (".woff", "font/woff"),
    (".woff2", "font/woff2"),
    (".ttf", "application/x-font-ttf"),
    (".eot", "application/vnd.ms-fontobject"),
    (".otf", "application/font-otf"),
    (".json", "application/json"),
    (".xml", "text/xml"),
)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _CacheEntry:
    document: bytes
    created: int
    filename: bytes


class _CostCache(Generic[_K, _V]):
    """A least-recently-used cache whose entries have a cost, limited in total."""

    def __init__(self, max_cost: int) -> None:
        self.max_cost = max_cost
        self._entries: OrderedDict[_K, tuple[_V, int]] = OrderedDict()
        self._total = 0

    def get(self, key: _K) -> _V | None:
        item = self._entries.get(key)
        if item is None:
            return None
        self._entries.move_to_end(key)
        return item[0]

    def _remove(self, key: _K) -> None:
        item = self._entries.pop(key, None)
        if item is not None:
            self._total -= item[1]

    def insert(self, key: _K, value: _V, cost: int) -> bool:
        self._remove(key)
        if cost > self.max_cost:
            return False
        while self._entries and self._total + cost > self.max_cost:
            _, (_, old_cost) = self._entries.popitem(last=False)
            self._total -= old_cost
        self._entries[key] = (value, cost)
        self._total += cost
        return True


class StaticFileController(HttpRequestHandler):
    """Delivers files below a document root.

    Settings: ``path`` (document root, relative to the settings file, default
    ``.``), ``encoding`` (default ``UTF-8``), ``maxAge`` in milliseconds for the
    browser cache (default 60000), ``cacheTime`` in milliseconds (default
    60000, 0 means forever), ``cacheSize`` in bytes (default 1000000) and
    ``maxCachedFileSize`` (default 65536).  Create one instance and reuse it,
    or the cache is of no use.
    """

    def __init__(self, settings: Settings) -> None:
        self.max_age = settings.get_int("maxAge", 60000)
        self.encoding = settings.get_str("encoding", "UTF-8")
        self.docroot = settings.resolve_path(settings.get_str("path", "."))
        self.max_cached_file_size = settings.get_int("maxCachedFileSize", 65536)
        self.cache_timeout = settings.get_int("cacheTime", 60000)
        self._cache: _CostCache[bytes, _CacheEntry] = _CostCache(settings.get_int("cacheSize", 1000000))
        self._lock = threading.Lock()
        log.debug(
            "StaticFileController: docroot=%s, encoding=%s, maxAge=%i",
            self.docroot,
            self.encoding,
            self.max_age,
        )

    def content_type_for(self, file_name: bytes | str) -> str | None:
        """Return the Content-Type for a file name by its ending, or None if unknown."""
        name = file_name.decode("utf-8", "replace") if isinstance(file_name, bytes) else file_name
        for ending, content_type in _FIXED_TYPES:
            if name.endswith(ending):
                return content_type
        if name.endswith(".txt"):
            return f"text/plain; charset={self.encoding}"
        if name.endswith((".html", ".htm")):
            return f"text/html; charset={self.encoding}"
        for ending, content_type in _OTHER_TYPES:
            if name.endswith(ending):
                return content_type
        log.debug("StaticFileController: unknown MIME type for filename %r", name)
        return None

    def _set_content_type(self, file_name: bytes, response: HttpResponse) -> None:
        content_type = self.content_type_for(file_name)
        if content_type is not None:
            response.set_header(b"Content-Type", content_type)

    def _set_cache_control(self, response: HttpResponse) -> None:
        response.set_header(b"Cache-Control", f"max-age={int(self.max_age / 1000)}")

    def service(self, request: HttpRequest, response: HttpResponse) -> None:
        """Send the requested file, from the cache if possible."""
        path = request.path
        now = _now_ms()
        with self._lock:
            entry = self._cache.get(path)
            hit = entry is not None and (
                self.cache_timeout == 0 or entry.created > now - self.cache_timeout
            )
        if hit and entry is not None:
            log.debug("StaticFileController: Cache hit for %r", path)
            self._set_content_type(entry.filename, response)
            self._set_cache_control(response)
            response.write(entry.document, True)
            return

        log.debug("StaticFileController: Cache miss for %r", path)
        if b"/.." in path:
            log.warning("StaticFileController: detected forbidden characters in path %r", path)
            response.set_status(403, b"forbidden")
            response.write(b"403 forbidden", True)
            return

        docroot = os.fsencode(self.docroot)
        if os.path.isdir(docroot + path):
            path += b"/index.html"
        full_name = docroot + path
        try:
            file = open(full_name, "rb")
        except OSError:
            if os.path.exists(full_name):
                log.warning("StaticFileController: Cannot open existing file %r for reading", full_name)
                response.set_status(403, b"forbidden")
                response.write(b"403 forbidden", True)
            else:
                response.set_status(404, b"not found")
                response.write(b"404 not found", True)
            return

        with file:
            size = os.fstat(file.fileno()).st_size
            self._set_content_type(path, response)
            self._set_cache_control(response)
            response.set_header(b"Content-Length", size)
            blocks = iter(partial(file.read, _BLOCK_SIZE), b"")
            if size <= self.max_cached_file_size:
                document = bytearray()
                for block in blocks:
                    response.write(block)
                    document += block
                new_entry = _CacheEntry(bytes(document), now, path)
                with self._lock:
                    self._cache.insert(request.path, new_entry, len(new_entry.document))
            else:
                for block in blocks:
                    response.write(block)


__all__ = ["StaticFileController"]
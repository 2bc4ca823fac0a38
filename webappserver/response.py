"""The HTTP response that a request handler sends back to the client."""

from __future__ import annotations

import contextlib
import logging
from typing import BinaryIO

from .cookie import HttpCookie

log = logging.getLogger(__name__)


def _as_bytes(value: bytes | str | int) -> bytes:
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        return str(value).encode("ascii")
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class HttpResponse:
    """A response written to a binary stream.

    The status line, headers and cookies are sent automatically before the
    first body data.  A single write with ``last_part=True`` sets the
    Content-Length header; otherwise chunked mode is used unless there is a
    Content-Length or a ``Connection: close`` header.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._status_code = 200
        self._status_text = b"OK"
        self._headers: dict[bytes, bytes] = {}
        self._cookies: dict[bytes, HttpCookie] = {}
        self._sent_headers = False
        self._sent_last_part = False
        self._chunked = False

    def __repr__(self) -> str:
        return f"HttpResponse({self._status_code} {self._status_text!r})"

    def _require_headers_unsent(self) -> None:
        if self._sent_headers:
            raise RuntimeError("the response headers have already been sent")

    def set_header(self, name: bytes | str, value: bytes | str | int) -> None:
        """Set a header; must be called before the first write."""
        self._require_headers_unsent()
        self._headers[_as_bytes(name)] = _as_bytes(value)

    @property
    def headers(self) -> dict[bytes, bytes]:
        """The response headers."""
        return self._headers

    @property
    def cookies(self) -> dict[bytes, HttpCookie]:
        """The cookies to be sent, keyed by name."""
        return self._cookies

    def set_status(self, status_code: int, description: bytes | str = b"") -> None:
        """Set the status code and its description (default 200 OK)."""
        self._status_code = status_code
        self._status_text = _as_bytes(description)

    @property
    def status_code(self) -> int:
        """The status code."""
        return self._status_code

    @property
    def is_connected(self) -> bool:
        """False once the underlying stream has been closed."""
        return not getattr(self._stream, "closed", False)

    @property
    def has_sent_last_part(self) -> bool:
        """True once the body has been sent completely."""
        return self._sent_last_part

    def _write_raw(self, data: bytes) -> bool:
        view = memoryview(data)
        while view and self.is_connected:
            try:
                written = self._stream.write(view)
            except OSError as error:
                log.debug("HttpResponse: write failed: %s", error)
                return False
            view = view[written or 0 :]
        return True

    def _write_headers(self) -> None:
        self._require_headers_unsent()
        lines = [b"HTTP/1.1 " + str(self._status_code).encode("ascii") + b" " + self._status_text]
        lines.extend(name + b": " + self._headers[name] for name in sorted(self._headers))
        lines.extend(b"Set-Cookie: " + self._cookies[name].to_bytes() for name in sorted(self._cookies))
        self._write_raw(b"".join(line + b"\r\n" for line in lines) + b"\r\n")
        self.flush()
        self._sent_headers = True

    def write(self, data: bytes | str = b"", last_part: bool = False) -> None:
        """Write body data; ``last_part`` marks the end of the body and flushes."""
        if self._sent_last_part:
            raise RuntimeError("the last part of the response has already been sent")
        data = _as_bytes(data)

        if not self._sent_headers:
            if last_part:
                self._headers[b"Content-Length"] = str(len(data)).encode("ascii")
            else:
                connection = self._headers.get(b"Connection", self._headers.get(b"connection", b""))
                if connection.lower() != b"close" and b"Content-Length" not in self._headers:
                    self._headers[b"Transfer-Encoding"] = b"chunked"
                    self._chunked = True
            self._write_headers()

        if data:
            if self._chunked:
                self._write_raw(format(len(data), "x").encode("ascii") + b"\r\n" + data + b"\r\n")
            else:
                self._write_raw(data)

        if last_part:
            if self._chunked:
                self._write_raw(b"0\r\n\r\n")
            self.flush()
            self._sent_last_part = True

    def set_cookie(self, cookie: HttpCookie) -> None:
        """Add a cookie; must be called before the first write.  Nameless cookies are ignored."""
        self._require_headers_unsent()
        if cookie.name:
            self._cookies[cookie.name] = cookie

    def redirect(self, url: bytes | str) -> None:
        """Send a 303 redirect to ``url``; cannot be combined with write()."""
        self.set_status(303, b"See Other")
        self.set_header(b"Location", url)
        self.write(b"Redirect", True)

    def flush(self) -> None:
        """Flush the underlying stream."""
        if self.is_connected:
            with contextlib.suppress(OSError):
                self._stream.flush()


__all__ = ["HttpResponse"]
"""HTTP cookies as defined in RFC 2109, with some RFC 6265bis attributes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

log = logging.getLogger(__name__)

_BYTE_FIELDS = ("name", "value", "path", "comment", "domain", "same_site")


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def _to_int(value: bytes) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def split_csv(source: bytes) -> list[bytes]:
    """Split a string into parts delimited by semicolons.

    Semicolons within double quotes are kept, the quotes are removed and
    empty parts are dropped.
    """
    parts: list[bytes] = []
    buffer = bytearray()
    in_string = False
    for byte in source:
        if byte == ord('"'):
            in_string = not in_string
        elif byte == ord(";") and not in_string:
            trimmed = bytes(buffer).strip()
            if trimmed:
                parts.append(trimmed)
            buffer.clear()
        else:
            buffer.append(byte)
    trimmed = bytes(buffer).strip()
    if trimmed:
        parts.append(trimmed)
    return parts


def _split_pair(part: bytes) -> tuple[bytes, bytes]:
    # A part without '=' yields itself as both name and value; a part that
    # starts with '=' yields an empty value.
    position = part.find(b"=")
    if position == 0:
        return part.strip(), b""
    if position < 0:
        stripped = part.strip()
        return stripped, stripped
    return part[:position].strip(), part[position + 1 :].strip()


@dataclass
class HttpCookie:
    """A cookie that can be rendered into a Set-Cookie header.

    ``max_age`` is in seconds; 0 means the browser discards the cookie
    immediately.  ``same_site`` may be ``b"Lax"`` or ``b"Strict"``.
    """

    name: bytes = b""
    value: bytes = b""
    max_age: int = 0
    path: bytes = b"/"
    comment: bytes = b""
    domain: bytes = b""
    secure: bool = False
    http_only: bool = False
    same_site: bytes = b""
    version: int = 1

    def __post_init__(self) -> None:
        for field_name in _BYTE_FIELDS:
            setattr(self, field_name, _as_bytes(getattr(self, field_name)))

    @classmethod
    def parse(cls, source: bytes | str) -> HttpCookie:
        """Create a cookie from a string as received in a Cookie2 header."""
        cookie = cls(path=b"")
        for part in split_csv(_as_bytes(source)):
            name, value = _split_pair(part)
            if name == b"Comment":
                cookie.comment = value
            elif name == b"Domain":
                cookie.domain = value
            elif name == b"Max-Age":
                cookie.max_age = _to_int(value)
            elif name == b"Path":
                cookie.path = value
            elif name == b"Secure":
                cookie.secure = True
            elif name == b"HttpOnly":
                cookie.http_only = True
            elif name == b"SameSite":
                cookie.same_site = value
            elif name == b"Version":
                cookie.version = _to_int(value)
            elif not cookie.name:
                cookie.name = name
                cookie.value = value
            else:
                log.warning("HttpCookie: Ignoring unknown %r=%r", name, value)
        return cookie

    def to_bytes(self) -> bytes:
        """Render this cookie for use in a Set-Cookie header."""
        parts = [self.name + b"=" + self.value]
        if self.comment:
            parts.append(b"Comment=" + self.comment)
        if self.domain:
            parts.append(b"Domain=" + self.domain)
        if self.max_age != 0:
            parts.append(b"Max-Age=" + str(self.max_age).encode("ascii"))
        if self.path:
            parts.append(b"Path=" + self.path)
        if self.secure:
            parts.append(b"Secure")
        if self.http_only:
            parts.append(b"HttpOnly")
        if self.same_site:
            parts.append(b"SameSite=" + self.same_site)
        parts.append(b"Version=" + str(self.version).encode("ascii"))
        return b"; ".join(parts)


__all__ = ["HttpCookie", "split_csv"]

# Keep the dataclass field order visible to callers that introspect cookies.
_FIELD_NAMES = tuple(f.name for f in fields(HttpCookie))
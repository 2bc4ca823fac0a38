"""Parsing of a single HTTP request read from a byte stream."""

from __future__ import annotations

import enum
import logging
import string
import tempfile
from typing import IO, BinaryIO

from .config import Settings
from .cookie import split_csv

log = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits.encode("ascii"))
_BLOCK_SIZE = 65536
_CRLF = b"\r\n"


class RequestStatus(enum.Enum):
    """States of the request parser."""

    WAIT_FOR_REQUEST = enum.auto()
    WAIT_FOR_HEADER = enum.auto()
    WAIT_FOR_BODY = enum.auto()
    COMPLETE = enum.auto()
    ABORT_SIZE = enum.auto()
    ABORT_BROKEN = enum.auto()

    @property
    def is_final(self) -> bool:
        """True if no more data will be read for the request."""
        return self in (RequestStatus.COMPLETE, RequestStatus.ABORT_SIZE, RequestStatus.ABORT_BROKEN)


def url_decode(source: bytes | str) -> bytes:
    """Decode a URL-encoded string: ``+`` becomes a space and ``%XX`` a byte."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    buffer = bytearray(source.replace(b"+", b" "))
    position = buffer.find(b"%")
    while position >= 0:
        digits = bytes(buffer[position + 1 : position + 3])
        if digits and all(char in _HEX_DIGITS for char in digits):
            buffer[position : position + 3] = bytes([int(digits, 16)])
        position = buffer.find(b"%", position + 1)
    return bytes(buffer)


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def _to_int(value: bytes) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def _split_cookie_pair(part: bytes) -> tuple[bytes, bytes]:
    position = part.find(b"=")
    if position == 0:
        return part.strip(), b""
    if position < 0:
        stripped = part.strip()
        return stripped, stripped
    return part[:position].strip(), part[position + 1 :].strip()


def _quoted_attribute(line: bytes, marker: bytes) -> bytes | None:
    start = line.find(marker)
    if start < 0:
        return None
    end = line.find(b'"', start + len(marker))
    if end < start:
        return None
    return line[start + len(marker) : end]


class HttpRequest:
    """A single HTTP request, read incrementally from a binary stream.

    The settings ``maxRequestSize`` (default 16000) and ``maxMultiPartSize``
    (default 1000000) limit the accepted size.  Uploaded files are kept in
    temporary files that are closed by :meth:`close`.
    """

    def __init__(self, settings: Settings) -> None:
        self._status = RequestStatus.WAIT_FOR_REQUEST
        self._current_size = 0
        self._expected_body_size = 0
        self._max_size = settings.get_int("maxRequestSize", 16000)
        self._max_multipart_size = settings.get_int("maxMultiPartSize", 1000000)
        self._headers: dict[bytes, list[bytes]] = {}
        self._parameters: dict[bytes, list[bytes]] = {}
        self._uploaded_files: dict[bytes, IO[bytes]] = {}
        self._cookies: dict[bytes, bytes] = {}
        self._body = bytearray()
        self._method = b""
        self._path = b""
        self._version = b""
        self._peer_address = ""
        self._current_header = b""
        self._boundary = b""
        self._temp_file: IO[bytes] | None = None
        self._line_buffer = bytearray()

    def __repr__(self) -> str:
        return f"HttpRequest({self._method!r} {self._path!r}, status={self._status.name})"

    # ------------------------------------------------------------------ reading

    def read_from(self, stream: BinaryIO, peer_address: str = "") -> RequestStatus:
        """Read from ``stream`` until the request is complete, aborted or no data is left.

        May be called again with more data when the stream ran dry early.
        Returns the new status.
        """
        while not self._status.is_final:
            if not self._step(stream, peer_address):
                break
            too_large = (
                self._current_size > self._max_size
                if not self._boundary
                else self._current_size > self._max_multipart_size
            )
            if too_large:
                log.warning("HttpRequest: received too many bytes")
                self._status = RequestStatus.ABORT_SIZE
            if self._status is RequestStatus.COMPLETE:
                self._decode_request_params()
                self._extract_cookies()
        return self._status

    def _step(self, stream: BinaryIO, peer_address: str) -> bool:
        if self._status is RequestStatus.WAIT_FOR_REQUEST:
            return self._read_request(stream, peer_address)
        if self._status is RequestStatus.WAIT_FOR_HEADER:
            return self._read_header(stream)
        return self._read_body(stream)

    def _read_line(self, stream: BinaryIO) -> tuple[bool, bytes | None]:
        """Collect bytes until a line break; return (got data, complete line or None)."""
        to_read = self._max_size - self._current_size + 1  # one more byte detects overflow
        data = stream.readline(to_read)
        if not data:
            return False, None
        self._current_size += len(data)
        self._line_buffer += data
        if _CRLF not in self._line_buffer:
            return True, None
        line = bytes(self._line_buffer).strip()
        self._line_buffer.clear()
        return True, line

    def _read_request(self, stream: BinaryIO, peer_address: str) -> bool:
        got_data, line = self._read_line(stream)
        if not line:
            return got_data
        log.debug("HttpRequest: from %s: %r", peer_address, line)
        parts = line.split(b" ")
        if len(parts) != 3 or b"HTTP" not in parts[2]:
            log.warning("HttpRequest: received broken HTTP request, invalid first line")
            self._status = RequestStatus.ABORT_BROKEN
        else:
            self._method = parts[0].strip()
            self._path = parts[1]
            self._version = parts[2]
            self._peer_address = peer_address
            self._status = RequestStatus.WAIT_FOR_HEADER
        return True

    def _read_header(self, stream: BinaryIO) -> bool:
        got_data, line = self._read_line(stream)
        if line is None:
            return got_data
        colon = line.find(b":")
        if colon > 0:
            self._current_header = line[:colon].lower()
            self._headers.setdefault(self._current_header, []).append(line[colon + 1 :].strip())
        elif line:
            values = self._headers.get(self._current_header)
            if values:
                values[-1] = values[-1] + b" " + line
        else:
            self._finish_headers()
        return True

    def _finish_headers(self) -> None:
        content_type = self.get_header(b"content-type")
        if content_type.startswith(b"multipart/form-data"):
            position = content_type.find(b"boundary=")
            if position >= 0:
                boundary = content_type[position + 9 :]
                if len(boundary) >= 2 and boundary.startswith(b'"') and boundary.endswith(b'"'):
                    boundary = boundary[1:-1]
                self._boundary = boundary
        content_length = self.get_header(b"content-length")
        if content_length:
            self._expected_body_size = _to_int(content_length)
        if self._expected_body_size == 0:
            self._status = RequestStatus.COMPLETE
        elif not self._boundary and self._expected_body_size + self._current_size > self._max_size:
            log.warning("HttpRequest: expected body is too large")
            self._status = RequestStatus.ABORT_SIZE
        elif self._boundary and self._expected_body_size > self._max_multipart_size:
            log.warning("HttpRequest: expected multipart body is too large")
            self._status = RequestStatus.ABORT_SIZE
        else:
            self._status = RequestStatus.WAIT_FOR_BODY

    def _read_body(self, stream: BinaryIO) -> bool:
        if not self._boundary:
            to_read = self._expected_body_size - len(self._body)
            data = stream.read(to_read) if to_read > 0 else b""
            self._current_size += len(data)
            self._body += data
            if len(self._body) >= self._expected_body_size:
                self._status = RequestStatus.COMPLETE
                return True
            return bool(data)

        if self._temp_file is None:
            self._temp_file = tempfile.TemporaryFile()
        temp_file = self._temp_file
        temp_file.seek(0, 2)
        file_size = temp_file.tell()
        to_read = min(self._expected_body_size - file_size, _BLOCK_SIZE)
        data = stream.read(to_read) if to_read > 0 else b""
        file_size += temp_file.write(data)
        if file_size >= self._max_multipart_size:
            log.warning("HttpRequest: received too many multipart bytes")
            self._status = RequestStatus.ABORT_SIZE
            return True
        if file_size >= self._expected_body_size:
            temp_file.flush()
            self._parse_multipart_file()
            temp_file.close()
            self._temp_file = None
            self._status = RequestStatus.COMPLETE
            return True
        return bool(data)

    def _parse_multipart_file(self) -> None:
        assert self._temp_file is not None
        temp_file = self._temp_file
        temp_file.seek(0, 2)
        total = temp_file.tell()
        temp_file.seek(0)
        delimiter = b"--" + self._boundary
        terminator = self._boundary + b"--"
        finished = False

        def at_end() -> bool:
            return temp_file.tell() >= total

        while not at_end() and not finished:
            field_name = b""
            file_name = b""
            while not at_end():
                line = temp_file.readline(_BLOCK_SIZE).strip()
                if line.startswith(b"Content-Disposition:"):
                    if b"form-data" in line:
                        field_name = _quoted_attribute(line, b' name="') or field_name
                        file_name = _quoted_attribute(line, b' filename="') or file_name
                    else:
                        log.debug("HttpRequest: ignoring unsupported content part %r", line)
                elif not line:
                    break

            uploaded_file: IO[bytes] | None = None
            field_value = bytearray()
            while not at_end():
                line = temp_file.readline(_BLOCK_SIZE)
                if line.startswith(delimiter):
                    # The line break before the boundary belongs to the delimiter.
                    if field_name and not file_name:
                        value = bytes(field_value[:-2])
                        self._parameters.setdefault(field_name, []).append(value)
                    elif field_name and file_name:
                        if uploaded_file is not None:
                            uploaded_file.seek(0, 2)
                            uploaded_file.truncate(max(uploaded_file.tell() - 2, 0))
                            uploaded_file.flush()
                            uploaded_file.seek(0)
                            self._parameters.setdefault(field_name, []).append(file_name)
                            previous = self._uploaded_files.pop(field_name, None)
                            if previous is not None:
                                previous.close()
                            self._uploaded_files[field_name] = uploaded_file
                        else:
                            log.warning("HttpRequest: format error, unexpected end of file data")
                    if terminator in line:
                        finished = True
                    break
                if field_name and not file_name:
                    self._current_size += len(line)
                    field_value += line
                elif field_name and file_name:
                    if uploaded_file is None:
                        uploaded_file = tempfile.TemporaryFile()
                    uploaded_file.write(line)

    def _decode_request_params(self) -> None:
        raw_parameters = b""
        question_mark = self._path.find(b"?")
        if question_mark >= 0:
            raw_parameters = self._path[question_mark + 1 :]
            self._path = self._path[:question_mark]
        content_type = self.get_header(b"content-type")
        if self._body and (not content_type or content_type.startswith(b"application/x-www-form-urlencoded")):
            raw_parameters = raw_parameters + b"&" + bytes(self._body) if raw_parameters else bytes(self._body)
        for part in raw_parameters.split(b"&"):
            equals = part.find(b"=")
            if equals >= 0:
                name = url_decode(part[:equals].strip())
                value = url_decode(part[equals + 1 :].strip())
                self._parameters.setdefault(name, []).append(value)
            elif part:
                self._parameters.setdefault(url_decode(part), []).append(b"")

    def _extract_cookies(self) -> None:
        for header in self._headers.pop(b"cookie", []):
            for part in split_csv(header):
                name, value = _split_cookie_pair(part)
                self._cookies[name] = value

    # --------------------------------------------------------------- accessors

    @property
    def status(self) -> RequestStatus:
        """The state of the parser."""
        return self._status

    @property
    def method(self) -> bytes:
        """The request method, e.g. ``b"GET"``."""
        return self._method

    @property
    def path(self) -> bytes:
        """The decoded path, e.g. ``b"/index.html"``."""
        return url_decode(self._path)

    @property
    def raw_path(self) -> bytes:
        """The path as received, still URL-encoded."""
        return self._path

    @property
    def version(self) -> bytes:
        """The protocol version, e.g. ``b"HTTP/1.1"``."""
        return self._version

    @property
    def body(self) -> bytes:
        """The raw body; empty for multipart requests."""
        return bytes(self._body)

    @property
    def peer_address(self) -> str:
        """The address of the connected client."""
        return self._peer_address

    def get_header(self, name: bytes | str) -> bytes:
        """Return the last value of a header (name not case-sensitive), or ``b""``."""
        values = self._headers.get(_as_bytes(name).lower())
        return values[-1] if values else b""

    def get_headers(self, name: bytes | str) -> list[bytes]:
        """Return all values of a header in the order received."""
        return list(self._headers.get(_as_bytes(name).lower(), []))

    def header_items(self) -> list[tuple[bytes, bytes]]:
        """Return all headers as (lower-case name, value) pairs sorted by name."""
        return [(name, value) for name in sorted(self._headers) for value in self._headers[name]]

    def get_parameter(self, name: bytes | str) -> bytes:
        """Return the last value of a parameter (case-sensitive), or ``b""``."""
        values = self._parameters.get(_as_bytes(name))
        return values[-1] if values else b""

    def get_parameters(self, name: bytes | str) -> list[bytes]:
        """Return all values of a parameter in the order received."""
        return list(self._parameters.get(_as_bytes(name), []))

    def parameter_items(self) -> list[tuple[bytes, bytes]]:
        """Return all parameters as (name, value) pairs sorted by name."""
        return [(name, value) for name in sorted(self._parameters) for value in self._parameters[name]]

    def get_uploaded_file(self, field_name: bytes | str) -> IO[bytes] | None:
        """Return the open temporary file uploaded in a form field, or None."""
        return self._uploaded_files.get(_as_bytes(field_name))

    def get_cookie(self, name: bytes | str) -> bytes:
        """Return the value of a cookie, or ``b""``."""
        return self._cookies.get(_as_bytes(name), b"")

    @property
    def cookies(self) -> dict[bytes, bytes]:
        """All cookies sorted by name."""
        return dict(sorted(self._cookies.items()))

    # --------------------------------------------------------------- lifetime

    def close(self) -> None:
        """Close and discard all temporary files."""
        for uploaded in self._uploaded_files.values():
            uploaded.close()
        self._uploaded_files.clear()
        if self._temp_file is not None:
            self._temp_file.close()
            self._temp_file = None

    def __enter__(self) -> HttpRequest:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


__all__ = ["HttpRequest", "RequestStatus", "url_decode"]
"""Thread-safe storage for the data of a single HTTP session."""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> bytes:
    return ("{" + str(uuid.uuid4()) + "}").encode("ascii")


@dataclass
class _SessionData:
    id: bytes = field(default_factory=_new_id)
    last_access: int = field(default_factory=_now_ms)
    values: dict[bytes, Any] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)


class HttpSession:
    """Key/value data of one HTTP session.

    Copies made with ``copy.copy`` share the same data.  A null session
    (created with ``can_store=False``) ignores every change and holds nothing.
    """

    def __init__(self, can_store: bool = False) -> None:
        self._data: _SessionData | None = _SessionData() if can_store else None

    def __copy__(self) -> HttpSession:
        other = HttpSession()
        other._data = self._data
        return other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HttpSession):
            return NotImplemented
        return self._data is other._data

    def __hash__(self) -> int:
        return id(self._data)

    def __repr__(self) -> str:
        return f"HttpSession(id={self.id!r})"

    @property
    def id(self) -> bytes:
        """The unique ID of this session, empty for a null session."""
        return self._data.id if self._data else b""

    @property
    def is_null(self) -> bool:
        """True if this session cannot store data."""
        return self._data is None

    def set(self, key: bytes, value: Any) -> None:
        """Store a value."""
        if self._data:
            with self._data.lock:
                self._data.values[key] = value

    def remove(self, key: bytes) -> None:
        """Remove a value, if present."""
        if self._data:
            with self._data.lock:
                self._data.values.pop(key, None)

    def get(self, key: bytes) -> Any:
        """Return a stored value, or None."""
        if not self._data:
            return None
        with self._data.lock:
            return self._data.values.get(key)

    def __contains__(self, key: object) -> bool:
        if not self._data:
            return False
        with self._data.lock:
            return key in self._data.values

    def get_all(self) -> dict[bytes, Any]:
        """Return a copy of all stored values."""
        if not self._data:
            return {}
        with self._data.lock:
            return dict(self._data.values)

    @property
    def last_access(self) -> int:
        """Time of the last access in milliseconds since the epoch, 0 for a null session."""
        if not self._data:
            return 0
        with self._data.lock:
            return self._data.last_access

    def touch(self) -> None:
        """Set the time of last access to now, renewing the timeout period."""
        if self._data:
            with self._data.lock:
                self._data.last_access = _now_ms()
"""Storage of HTTP sessions that removes them when they expire."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from .config import Settings
from .cookie import HttpCookie
from .request import HttpRequest
from .response import HttpResponse
from .session import HttpSession

log = logging.getLogger(__name__)

SessionListener = Callable[[bytes], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class HttpSessionStore:
    """Creates, finds and expires sessions identified by a cookie.

    Settings: ``cookieName`` (default ``sessionid``), ``expirationTime`` in
    milliseconds (default 3600000), and optionally ``cookiePath``,
    ``cookieComment`` and ``cookieDomain``.  Call :meth:`start` to remove
    expired sessions periodically in a background thread.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._cookie_name = settings.get_str("cookieName", "sessionid").encode("utf-8")
        self._expiration_time = settings.get_int("expirationTime", 3600000)
        self._sessions: dict[bytes, HttpSession] = {}
        self._lock = threading.RLock()
        self._listeners: list[SessionListener] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.cleanup_interval = 60.0
        log.debug("HttpSessionStore: Sessions expire after %i milliseconds", self._expiration_time)

    def add_listener(self, callback: SessionListener) -> None:
        """Call ``callback`` with the ID of every session that is deleted."""
        self._listeners.append(callback)

    def _notify_deleted(self, session_id: bytes) -> None:
        for callback in self._listeners:
            callback(session_id)

    def _session_cookie(self, session: HttpSession) -> HttpCookie:
        return HttpCookie(
            self._settings.get_str("cookieName", "sessionid").encode("utf-8"),
            session.id,
            int(self._expiration_time / 1000),
            self._settings.get_str("cookiePath", "").encode("utf-8"),
            self._settings.get_str("cookieComment", "").encode("utf-8"),
            self._settings.get_str("cookieDomain", "").encode("utf-8"),
            False,
            False,
            b"Lax",
        )

    def get_session_id(self, request: HttpRequest, response: HttpResponse) -> bytes:
        """Return the ID of the current valid session, or ``b""``.

        The cookie already set in the response takes priority over the one
        in the request.
        """
        with self._lock:
            cookie = response.cookies.get(self._cookie_name)
            session_id = cookie.value if cookie is not None else b""
            if not session_id:
                session_id = request.get_cookie(self._cookie_name)
            if session_id and session_id not in self._sessions:
                log.debug("HttpSessionStore: received invalid session cookie with ID %r", session_id)
                session_id = b""
            return session_id

    def get_session(
        self, request: HttpRequest, response: HttpResponse, allow_create: bool = True
    ) -> HttpSession:
        """Return the session of a request, creating one if allowed.

        The session cookie is (re)set in the response.  Without a session and
        with ``allow_create`` false, a null session is returned.
        """
        session_id = self.get_session_id(request, response)
        with self._lock:
            session = self._sessions.get(session_id) if session_id else None
            if session is not None and not session.is_null:
                response.set_cookie(self._session_cookie(session))
                session.touch()
                return session
            if allow_create:
                session = HttpSession(True)
                log.debug("HttpSessionStore: create new session with ID %r", session.id)
                self._sessions[session.id] = session
                response.set_cookie(self._session_cookie(session))
                return session
        return HttpSession()

    def get_session_by_id(self, session_id: bytes | str) -> HttpSession:
        """Return the session with this ID, or a null session."""
        if isinstance(session_id, str):
            session_id = session_id.encode("utf-8")
        with self._lock:
            session = self._sessions.get(session_id, HttpSession())
        session.touch()
        return session

    def remove_session(self, session: HttpSession) -> None:
        """Delete a session."""
        with self._lock:
            self._notify_deleted(session.id)
            self._sessions.pop(session.id, None)

    def cleanup_expired(self) -> None:
        """Delete all sessions that were not accessed within the expiration time."""
        with self._lock:
            now = _now_ms()
            for session_id, session in list(self._sessions.items()):
                if now - session.last_access > self._expiration_time:
                    log.debug("HttpSessionStore: session %r expired", session_id)
                    self._notify_deleted(session_id)
                    del self._sessions[session_id]

    def _run(self) -> None:
        while not self._stop_event.wait(self.cleanup_interval):
            self.cleanup_expired()

    def start(self) -> None:
        """Start removing expired sessions every ``cleanup_interval`` seconds."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="session-cleanup", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the periodic removal of expired sessions."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None


__all__ = ["HttpSessionStore"]
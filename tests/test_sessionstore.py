import io
import threading

from webappserver.config import Settings
from webappserver.request import HttpRequest
from webappserver.response import HttpResponse
from webappserver.sessionstore import HttpSessionStore


def _request(cookie=None):
    raw = b"GET / HTTP/1.1\r\n"
    if cookie is not None:
        raw += b"Cookie: sessionid=" + cookie + b"\r\n"
    raw += b"\r\n"
    request = HttpRequest(Settings())
    request.read_from(io.BytesIO(raw))
    return request


def _response():
    return HttpResponse(io.BytesIO())


def test_new_session_sets_cookie():
    store = HttpSessionStore(Settings({"expirationTime": 5000, "cookiePath": "/"}))
    response = _response()
    session = store.get_session(_request(), response)
    assert not session.is_null
    cookie = response.cookies[b"sessionid"]
    assert cookie.value == session.id
    assert cookie.same_site == b"Lax"
    assert cookie.path == b"/"
    assert cookie.max_age == 5


def test_existing_session_is_found_from_request_cookie():
    store = HttpSessionStore(Settings())
    first = store.get_session(_request(), _response())
    first.set(b"k", 1)
    response = _response()
    again = store.get_session(_request(first.id), response)
    assert again == first
    assert again.get(b"k") == 1
    assert response.cookies[b"sessionid"].value == first.id


def test_response_cookie_has_priority():
    store = HttpSessionStore(Settings())
    response = _response()
    session = store.get_session(_request(), response)
    assert store.get_session_id(_request(b"unknown"), response) == session.id


def test_unknown_session_id_is_cleared():
    store = HttpSessionStore(Settings())
    assert store.get_session_id(_request(b"unknown"), _response()) == b""


def test_no_create_returns_null_session():
    store = HttpSessionStore(Settings())
    response = _response()
    session = store.get_session(_request(), response, allow_create=False)
    assert session.is_null
    assert response.cookies == {}


def test_get_session_by_id():
    store = HttpSessionStore(Settings())
    session = store.get_session(_request(), _response())
    assert store.get_session_by_id(session.id) == session
    assert store.get_session_by_id(b"missing").is_null


def test_remove_session_notifies_listener():
    store = HttpSessionStore(Settings())
    deleted = []
    store.add_listener(deleted.append)
    session = store.get_session(_request(), _response())
    store.remove_session(session)
    assert deleted == [session.id]
    assert store.get_session_by_id(session.id).is_null


def test_cleanup_keeps_fresh_sessions():
    store = HttpSessionStore(Settings())
    session = store.get_session(_request(), _response())
    store.cleanup_expired()
    assert store.get_session_by_id(session.id) == session


def test_cleanup_removes_expired_sessions():
    store = HttpSessionStore(Settings({"expirationTime": -1}))
    deleted = []
    store.add_listener(deleted.append)
    session = store.get_session(_request(), _response())
    store.cleanup_expired()
    assert deleted == [session.id]
    assert store.get_session_by_id(session.id).is_null


def test_background_cleanup():
    store = HttpSessionStore(Settings({"expirationTime": -1}))
    store.cleanup_interval = 0.01
    removed = threading.Event()
    ids = []

    def on_delete(session_id):
        ids.append(session_id)
        removed.set()

    store.add_listener(on_delete)
    session = store.get_session(_request(), _response())
    store.start()
    try:
        assert removed.wait(5)
    finally:
        store.stop()
    assert ids == [session.id]
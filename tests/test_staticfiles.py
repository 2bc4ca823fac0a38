import io
from unittest import mock

import pytest

from webappserver.config import Settings
from webappserver.request import HttpRequest
from webappserver.response import HttpResponse
from webappserver.staticfiles import StaticFileController


def _request(path: bytes) -> HttpRequest:
    request = HttpRequest(Settings())
    request.read_from(io.BytesIO(b"GET " + path + b" HTTP/1.1\r\nHost: localhost\r\n\r\n"), "127.0.0.1")
    return request


def _dechunk(data: bytes) -> bytes:
    result = bytearray()
    while True:
        size_line, _, rest = data.partition(b"\r\n")
        size = int(size_line, 16)
        if size == 0:
            return bytes(result)
        result += rest[:size]
        data = rest[size + 2 :]


def _serve(controller, path: bytes):
    stream = io.BytesIO()
    response = HttpResponse(stream)
    controller.service(_request(path), response)
    if not response.has_sent_last_part:
        response.write(b"", True)
    head, _, body = stream.getvalue().partition(b"\r\n\r\n")
    lines = head.split(b"\r\n")
    headers = dict(line.split(b": ", 1) for line in lines[1:])
    if headers.get(b"Transfer-Encoding") == b"chunked":
        body = _dechunk(body)
    return lines[0], headers, body


@pytest.fixture
def docroot(tmp_path):
    root = tmp_path / "docroot"
    root.mkdir()
    return root


def _controller(docroot, **extra):
    values = {"path": str(docroot)}
    values.update(extra)
    return StaticFileController(Settings(values))


def test_serves_file_with_headers(docroot):
    (docroot / "page.html").write_bytes(b"<p>hi</p>")
    status, headers, body = _serve(_controller(docroot), b"/page.html")
    assert status == b"HTTP/1.1 200 OK"
    assert body == b"<p>hi</p>"
    assert headers[b"Content-Type"] == b"text/html; charset=UTF-8"
    assert headers[b"Cache-Control"] == b"max-age=60"
    assert headers[b"Content-Length"] == str(len(b"<p>hi</p>")).encode()


def test_missing_file_is_404(docroot):
    status, _, body = _serve(_controller(docroot), b"/nothing.txt")
    assert status == b"HTTP/1.1 404 not found"
    assert body == b"404 not found"


def test_parent_directory_is_forbidden(docroot):
    status, _, body = _serve(_controller(docroot), b"/../secret.txt")
    assert status == b"HTTP/1.1 403 forbidden"
    assert body == b"403 forbidden"


def test_directory_serves_index(docroot):
    sub = docroot / "sub"
    sub.mkdir()
    (sub / "index.html").write_bytes(b"index page")
    status, headers, body = _serve(_controller(docroot), b"/sub")
    assert status == b"HTTP/1.1 200 OK"
    assert body == b"index page"
    assert headers[b"Content-Type"].startswith(b"text/html")


def test_directory_without_index_is_404(docroot):
    (docroot / "empty").mkdir()
    status, _, _ = _serve(_controller(docroot), b"/empty")
    assert status == b"HTTP/1.1 404 not found"


def test_relative_docroot_resolved_against_settings_file(tmp_path, docroot):
    (docroot / "a.txt").write_bytes(b"relative")
    settings = Settings({"path": "docroot"}, file_name=str(tmp_path / "app.ini"))
    _, _, body = _serve(StaticFileController(settings), b"/a.txt")
    assert body == b"relative"


def test_url_encoded_path_is_decoded(docroot):
    (docroot / "with space.txt").write_bytes(b"spaced")
    _, _, body = _serve(_controller(docroot), b"/with%20space.txt")
    assert body == b"spaced"


def test_small_file_is_cached(docroot):
    target = docroot / "c.txt"
    target.write_bytes(b"first")
    controller = _controller(docroot)
    assert _serve(controller, b"/c.txt")[2] == b"first"
    target.write_bytes(b"second")
    status, headers, body = _serve(controller, b"/c.txt")
    assert body == b"first"
    assert headers[b"Content-Type"] == b"text/plain; charset=UTF-8"
    assert status == b"HTTP/1.1 200 OK"


def test_large_file_is_not_cached(docroot):
    target = docroot / "big.txt"
    target.write_bytes(b"0123456789")
    controller = _controller(docroot, maxCachedFileSize="4")
    assert _serve(controller, b"/big.txt")[2] == b"0123456789"
    target.write_bytes(b"abcdefghij")
    assert _serve(controller, b"/big.txt")[2] == b"abcdefghij"


def test_cache_size_evicts_oldest(docroot):
    (docroot / "a.txt").write_bytes(b"aaaaaa")
    (docroot / "b.txt").write_bytes(b"bbbbbb")
    controller = _controller(docroot, cacheSize="10")
    _serve(controller, b"/a.txt")
    _serve(controller, b"/b.txt")
    (docroot / "a.txt").write_bytes(b"AAAAAA")
    (docroot / "b.txt").write_bytes(b"BBBBBB")
    assert _serve(controller, b"/b.txt")[2] == b"bbbbbb"
    assert _serve(controller, b"/a.txt")[2] == b"AAAAAA"


def test_cache_entry_expires(docroot):
    target = docroot / "t.txt"
    target.write_bytes(b"old")
    controller = _controller(docroot, cacheTime="1000")
    with mock.patch("time.time", return_value=5000.0):
        assert _serve(controller, b"/t.txt")[2] == b"old"
    target.write_bytes(b"new")
    with mock.patch("time.time", return_value=5000.5):
        assert _serve(controller, b"/t.txt")[2] == b"old"
    with mock.patch("time.time", return_value=5002.0):
        assert _serve(controller, b"/t.txt")[2] == b"new"


def test_content_type_for_known_endings(docroot):
    controller = _controller(docroot, encoding="ISO-8859-1")
    assert controller.content_type_for("x.png") == "image/png"
    assert controller.content_type_for(b"x.jpg") == "image/jpeg"
    assert controller.content_type_for("x.woff2") == "font/woff2"
    assert controller.content_type_for("x.woff") == "font/woff"
    assert controller.content_type_for("x.htm") == "text/html; charset=ISO-8859-1"
    assert controller.content_type_for("x.txt") == "text/plain; charset=ISO-8859-1"


def test_content_type_for_unknown_ending(docroot):
    controller = _controller(docroot)
    assert controller.content_type_for("archive.zip") is None


def test_unknown_type_sends_no_content_type(docroot):
    (docroot / "data.bin").write_bytes(b"\x00\x01")
    _, headers, body = _serve(_controller(docroot), b"/data.bin")
    assert body == b"\x00\x01"
    assert b"Content-Type" not in headers


def test_max_age_setting(docroot):
    (docroot / "s.css").write_bytes(b"p{}")
    _, headers, _ = _serve(_controller(docroot, maxAge="5000"), b"/s.css")
    assert headers[b"Cache-Control"] == b"max-age=5"
    assert headers[b"Content-Type"] == b"text/css"
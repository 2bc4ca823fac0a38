import io

from webappserver.config import Settings
from webappserver.hello import HelloHandler
from webappserver.request import HttpRequest
from webappserver.response import HttpResponse

PAGE = b"<html><body>Hello World!</body></html>"


def _serve(raw: bytes) -> tuple[HttpResponse, bytes]:
    request = HttpRequest(Settings())
    request.read_from(io.BytesIO(raw), "127.0.0.1")
    stream = io.BytesIO()
    response = HttpResponse(stream)
    HelloHandler().service(request, response)
    return response, stream.getvalue()


def test_hello_page_body_and_headers():
    response, output = _serve(b"GET / HTTP/1.1\r\n\r\n")
    head, _, body = output.partition(b"\r\n\r\n")
    assert body == PAGE
    assert head.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Type: text/html; charset=ISO-8859-1" in head
    assert response.headers[b"Content-Length"] == str(len(PAGE)).encode()


def test_hello_finishes_response():
    response, _ = _serve(b"GET /anything?x=1 HTTP/1.1\r\n\r\n")
    assert response.has_sent_last_part is True
    assert response.status_code == 200


def test_hello_same_for_every_path():
    _, first = _serve(b"GET /a HTTP/1.1\r\n\r\n")
    _, second = _serve(b"POST /b HTTP/1.0\r\n\r\n")
    assert first == second
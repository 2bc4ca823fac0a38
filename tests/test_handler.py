import io

from webappserver.config import Settings
from webappserver.handler import HttpRequestHandler
from webappserver.request import HttpRequest
from webappserver.response import HttpResponse


def _request():
    request = HttpRequest(Settings())
    request.read_from(io.BytesIO(b"GET /x HTTP/1.1\r\n\r\n"))
    return request


class _Hello(HttpRequestHandler):
    def service(self, request, response):
        response.write(b"hi " + request.path, True)


def test_default_service_answers_501():
    stream = io.BytesIO()
    response = HttpResponse(stream)
    HttpRequestHandler().service(_request(), response)
    assert response.status_code == 501
    assert response.has_sent_last_part
    head, _, body = stream.getvalue().partition(b"\r\n\r\n")
    assert body == b"501 not implemented"
    assert head.split(b"\r\n")[0] == b"HTTP/1.1 501 not implemented"
    assert response.headers[b"Content-Length"] == str(len(body)).encode()


def test_subclass_overrides_service():
    stream = io.BytesIO()
    response = HttpResponse(stream)
    _Hello().service(_request(), response)
    assert response.status_code == 200
    assert stream.getvalue().endswith(b"\r\n\r\nhi /x")
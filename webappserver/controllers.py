"""Example controllers: request dump, form, file upload and session."""

from __future__ import annotations

from datetime import datetime
from functools import partial

from .cookie import HttpCookie
from .handler import HttpRequestHandler
from .request import HttpRequest
from .response import HttpResponse
from .sessionstore import HttpSessionStore

_BLOCK_SIZE = 65536
_HTML_UTF8 = b"text/html; charset=UTF-8"


def _format_datetime(moment: datetime) -> str:
    return f"{moment:%a %b} {moment.day} {moment:%H:%M:%S %Y}"


class DumpController(HttpRequestHandler):
    """Dumps the received request in the response."""

    def service(self, request: HttpRequest, response: HttpResponse) -> None:
        """Write method, path, headers, parameters, cookies and body as HTML."""
        response.set_header(b"Content-Type", _HTML_UTF8)
        response.set_cookie(HttpCookie(b"firstCookie", b"hello", 600, b"", b"", b"", False, True))
        response.set_cookie(HttpCookie(b"secondCookie", b"world", 600))

        parts = [
            b"<html><body>",
            b"<b>Request:</b>",
            b"<br>Method: " + request.method,
            b"<br>Path: " + request.path,
            b"<br>Version: " + request.version,
            b"<p><b>Headers:</b>",
        ]
        parts.extend(b"<br>" + name + b"=" + value for name, value in request.header_items())
        parts.append(b"<p><b>Parameters:</b>")
        parts.extend(b"<br>" + name + b"=" + value for name, value in request.parameter_items())
        parts.append(b"<p><b>Cookies:</b>")
        parts.extend(b"<br>" + name + b"=" + value for name, value in request.cookies.items())
        parts.append(b"<p><b>Body:</b><br>")
        parts.append(request.body)
        parts.append(b"</body></html>")
        response.write(b"".join(parts), True)


class FormController(HttpRequestHandler):
    """Shows an HTML form and echoes the submitted input."""

    def service(self, request: HttpRequest, response: HttpResponse) -> None:
        """Write the form, or the submitted name and city when ``action=show``."""
        response.set_header(b"Content-Type", _HTML_UTF8)
        if request.get_parameter(b"action") == b"show":
            response.write(b"<html><body>")
            response.write(b"Name = ")
            response.write(request.get_parameter(b"name"))
            response.write(b"<br>City = ")
            response.write(request.get_parameter(b"city"))
            response.write(b"</body></html>", True)
        else:
            response.write(b"<html><body>")
            response.write(b'<form method="post">')
            response.write(b'  <input type="hidden" name="action" value="show">')
            response.write(b'  Name: <input type="text" name="name"><br>')
            response.write(b'  City: <input type="text" name="city"><br>')
            response.write(b'  <input type="submit">')
            response.write(b"</form>")
            response.write(b"</body></html>", True)


class FileUploadController(HttpRequestHandler):
    """Shows an upload form and returns the uploaded JPEG image."""

    def service(self, request: HttpRequest, response: HttpResponse) -> None:
        """Write the upload form, or the uploaded file when ``action=show``."""
        if request.get_parameter(b"action") == b"show":
            response.set_header(b"Content-Type", b"image/jpeg")
            uploaded = request.get_uploaded_file(b"file1")
            if uploaded is not None:
                for block in iter(partial(uploaded.read, _BLOCK_SIZE), b""):
                    response.write(block)
            else:
                response.write(b"upload failed")
        else:
            response.set_header(b"Content-Type", _HTML_UTF8)
            response.write(b"<html><body>")
            response.write(b"Upload a JPEG image file<p>")
            response.write(b'<form method="post" enctype="multipart/form-data">')
            response.write(b'  <input type="hidden" name="action" value="show">')
            response.write(b'  File: <input type="file" name="file1"><br>')
            response.write(b'  <input type="submit">')
            response.write(b"</form>")
            response.write(b"</body></html>", True)


class SessionController(HttpRequestHandler):
    """Starts a session and reports when it was started."""

    def __init__(self, session_store: HttpSessionStore) -> None:
        self.session_store = session_store

    def service(self, request: HttpRequest, response: HttpResponse) -> None:
        """Write the start time of the session, starting one if needed."""
        response.set_header(b"Content-Type", _HTML_UTF8)
        session = self.session_store.get_session(request, response)
        if b"startTime" not in session:
            response.write(b"<html><body>New session started. Reload this page now.</body></html>")
            session.set(b"startTime", datetime.now())
        else:
            start_time: datetime = session.get(b"startTime")
            response.write(b"<html><body>Your session started ")
            response.write(_format_datetime(start_time).encode("utf-8"))
            response.write(b"</body></html>")


__all__ = ["DumpController", "FileUploadController", "FormController", "SessionController"]
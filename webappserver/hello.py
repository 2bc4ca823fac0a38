"""A request handler that answers every request with a fixed HTML page."""

from __future__ import annotations

import logging

from .handler import HttpRequestHandler
from .request import HttpRequest
from .response import HttpResponse

log = logging.getLogger(__name__)


class HelloHandler(HttpRequestHandler):
    """Returns a "Hello World!" HTML document."""

    def service(self, request: HttpRequest, response: HttpResponse) -> None:
        """Write the greeting page."""
        log.debug("HelloHandler: path=%r", request.path)
        response.set_header(b"Content-Type", b"text/html; charset=ISO-8859-1")
        response.write(b"<html><body>Hello World!</body></html>", True)
        log.debug("HelloHandler: finished request")


__all__ = ["HelloHandler"]
"""Base class of objects that generate responses for HTTP requests."""

from __future__ import annotations

import logging

from .request import HttpRequest
from .response import HttpResponse

log = logging.getLogger(__name__)


class HttpRequestHandler:
    """Generates a response for each request.

    Subclasses override :meth:`service`; the default answers 501.  One
    instance may be used by several threads at once.
    """

    def service(self, request: HttpRequest, response: HttpResponse) -> None:
        """Generate a response for ``request``."""
        log.critical("HttpRequestHandler: you need to override the service() function")
        log.debug(
            "HttpRequestHandler: request=%r %r %r", request.method, request.path, request.version
        )
        response.set_status(501, b"not implemented")
        response.write(b"501 not implemented", True)


__all__ = ["HttpRequestHandler"]
"""A small threaded HTTP/1.1 server with sessions, cookies, multipart uploads and static files."""

__version__ = "1.9.1"
__all__ = [
    "app",
    "config",
    "connection",
    "controllers",
    "cookie",
    "handler",
    "hello",
    "listener",
    "pool",
    "request",
    "response",
    "session",
    "sessionstore",
    "staticfiles",
]
"""A small web server that greets every request."""

from __future__ import annotations

import argparse
import logging
import time
from collections.abc import Sequence

from .config import Settings
from .hello import HelloHandler
from .listener import HttpListener

log = logging.getLogger(__name__)

_DEFAULTS = {
    "minThreads": "4",
    "maxThreads": "100",
    "cleanupInterval": "60000",
    "readTimeout": "60000",
    "maxRequestSize": "16000",
    "maxMultiPartSize": "10000000",
}


def build_settings(argv: Sequence[str] | None = None) -> Settings:
    """Return the server settings, with host and port taken from the command line."""
    parser = argparse.ArgumentParser(prog="webappserver", description="Serve a Hello World page.")
    parser.add_argument("--host", default="", help="address to bind to (default: all interfaces)")
    parser.add_argument("--port", type=int, default=8080, help="TCP port (default: 8080)")
    args = parser.parse_args(argv)
    values = dict(_DEFAULTS)
    values["port"] = str(args.port)
    if args.host:
        values["host"] = args.host
    return Settings(values)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server until interrupted."""
    logging.basicConfig()
    settings = build_settings(argv)
    with HttpListener(settings, HelloHandler()):
        log.warning("Application has started")
        try:
            while True:
                time.sleep(3600)
        except KeyboardInterrupt:
            pass
    log.warning("Application has stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
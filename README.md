# webappserver

A small HTTP/1.1 server built on the Python standard library alone.
It parses requests (query strings, URL-encoded bodies and
`multipart/form-data` uploads), writes responses with an automatic
`Content-Length` header or chunked transfer encoding, handles cookies and
server-side sessions, and serves static files from a document root with an
in-memory cache. Each connection is served in its own thread, taken from a
pool that grows and shrinks on demand; HTTPS is available through the
standard `ssl` module.

## Installation

```
pip install .
```

## Running the demo server

```
webappserver
webappserver --host 127.0.0.1 --port 9000
```

This starts a listener (port 8080 unless `--port` is given, all interfaces
unless `--host` is given) that answers every request with a short
"Hello World!" HTML page, served by `webappserver.hello.HelloHandler`.
Stop it with Ctrl+C.

## Writing your own handler

Subclass `webappserver.handler.HttpRequestHandler` and override `service`.
The base class answers every request with `501 not implemented`.

```python
from webappserver.config import Settings
from webappserver.handler import HttpRequestHandler
from webappserver.listener import HttpListener


class MyHandler(HttpRequestHandler):
    def service(self, request, response):
        response.set_header(b"Content-Type", b"text/plain; charset=UTF-8")
        response.write(b"You asked for " + request.path, True)


settings = Settings({"port": "8080", "minThreads": "4", "maxThreads": "100"})
with HttpListener(settings, MyHandler()) as listener:
    print("listening on", listener.address)
    input("Press Enter to stop\n")
```

`HttpListener` starts listening as soon as it is created and raises `OSError`
if it cannot bind. `close()` (or leaving the `with` block) stops accepting
connections, waits for the pending ones and closes the handler pool;
`listen()` starts again afterwards.

### Requests

`webappserver.request.HttpRequest` offers `method`, `path` (URL-decoded),
`raw_path`, `version`, `body` and `peer_address`, plus `get_header`,
`get_headers`, `header_items`, `get_parameter`, `get_parameters`,
`parameter_items`, `get_cookie`, `cookies` and `get_uploaded_file`. Header
names are not case-sensitive; parameter names are. Uploaded files are open
temporary files that are closed when the request is closed.
`url_decode` turns `+` into a space and `%XX` into a byte.

### Responses

`webappserver.response.HttpResponse` has `set_status`, `set_header`,
`set_cookie`, `write(data, last_part)`, `redirect(url)` and `flush`.
Headers and cookies must be set before the first `write`; doing it later
raises `RuntimeError`. A single `write(..., True)` sets `Content-Length`;
several writes use chunked mode unless a `Content-Length` or
`Connection: close` header is set.

### Cookies

`webappserver.cookie.HttpCookie` is a dataclass (`name`, `value`, `max_age`,
`path`, `comment`, `domain`, `secure`, `http_only`, `same_site`, `version`).
`HttpCookie.parse` reads one from a header value and `to_bytes` renders it
for `Set-Cookie`. `split_csv` splits on semicolons outside double quotes.

## Configuration

`webappserver.config.Settings` holds the key/value settings. Build it from a
dict, or load one group of an INI file with `Settings.from_ini(path, group)`;
keys before any section header belong to the `General` group. Relative file
names are resolved against the directory of the INI file.

| Key                | Meaning                                                        | Default   |
|--------------------|----------------------------------------------------------------|-----------|
| `host`, `port`     | Address to bind to (empty host means all interfaces)           | all, 0    |
| `readTimeout`      | Milliseconds to wait for data from the client (0 = forever)    | 10000     |
| `maxRequestSize`   | Largest accepted request, in bytes                             | 16000     |
| `maxMultiPartSize` | Largest accepted multipart body, in bytes                      | 1000000   |
| `minThreads`       | Idle connection handlers kept alive                            | 1         |
| `maxThreads`       | Most connection handlers at once                               | 100       |
| `cleanupInterval`  | Milliseconds between removals of one surplus idle handler      | 1000      |
| `sslKeyFile`, `sslCertFile` | PEM key and certificate; HTTPS is used when both are set | unset |
| `caCertFile`       | PEM CA certificate used to verify clients                      | unset     |
| `verifyPeer`       | Require and verify client certificates                         | false     |

Oversized requests are answered with `413`, malformed ones with `400`, and
connections beyond `maxThreads` with `503`.

## Sessions

`webappserver.sessionstore.HttpSessionStore` hands out
`webappserver.session.HttpSession` objects identified by a session cookie.
Its settings are `cookieName` (default `sessionid`), `expirationTime` in
milliseconds (default 3600000), and optionally `cookiePath`,
`cookieComment` and `cookieDomain`. Call `start()` to remove expired
sessions in a background thread every `cleanup_interval` seconds (60 by
default), or call `cleanup_expired()` yourself; `add_listener` registers a
callback that receives the ID of each deleted session.

## Static files

`webappserver.staticfiles.StaticFileController` serves files below `path`
(default `.`), appending `/index.html` for directories, refusing paths
containing `/..` with `403` and answering missing files with `404`. Further
settings: `encoding` (for text and HTML content types, default `UTF-8`),
`maxAge` (milliseconds, sent as `Cache-Control`, default 60000), `cacheTime`
(milliseconds, 0 = forever, default 60000), `cacheSize` (bytes, default
1000000) and `maxCachedFileSize` (bytes, default 65536). Create one instance
and reuse it so the cache is shared.

## Example controllers

`webappserver.controllers` has `DumpController` (echoes the request as HTML),
`FormController` (a form that shows what was submitted),
`FileUploadController` (uploads a JPEG and sends it back) and
`SessionController` (takes an `HttpSessionStore` and reports when the
session started).

## What this package does not do

There is no built-in routing of paths to controllers: the `webappserver`
command only serves the greeting page, and combining the controllers and
the static file controller under one server means writing a handler whose
`service` picks one by `request.path`. There is no template engine, and
logging goes through Python's `logging` module with no file logger of its
own.
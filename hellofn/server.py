import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict

from . import __version__
from .config import Settings
from .functions import build_app
from .runtime import TEXT_PLAIN, FunctionApp, HttpRequest, invocation_record, write_log


logger = logging.getLogger(__name__)


class HellofnHandler(BaseHTTPRequestHandler):
    server_version = f"hellofn/{__version__}"

    def log_message(self, format: str, *args) -> None:
        # Suppress access logs when server.quiet is True
        if getattr(self.server, "quiet", False):
            return
        logger.info("%s - %s", self.address_string(), format % args)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length", 0) or 0)
        if length < 0:
            raise ValueError(f"negative Content-Length: {length}")
        if length:
            return self.rfile.read(length)
        return b""

    def _send(self, status: int, headers: Dict[str, str], body: bytes) -> None:
        self.send_response(status)
        for k, v in headers.items():
            self.send_header(k, v)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def _handle(self) -> None:
        app: FunctionApp = self.server.app
        settings: Settings = self.server.settings

        try:
            raw_body = self._read_body()
        except ValueError as e:
            # body length unknown, so the connection cannot be reused
            self.close_connection = True
            self._send(400, dict(TEXT_PLAIN), f"Bad Request: invalid Content-Length ({e})".encode())
            return

        request = HttpRequest.build(
            method=self.command,
            url=self.path,
            headers={k: v for k, v in self.headers.items()},
            body=raw_body,
        )
        fn, status, headers, body = app.handle(request)

        if fn is not None and settings.invocation_logs:
            try:
                write_log(fn.name, invocation_record(request, status, headers, body), settings.home)
            except OSError as e:
                logger.warning("Could not write invocation log for '%s': %s", fn.name, e)

        self._send(status, headers, body)

    def do_GET(self):
        self._handle()

    def do_POST(self):
        self._handle()

    def do_PUT(self):
        self._handle()

    def do_PATCH(self):
        self._handle()

    def do_DELETE(self):
        self._handle()


def make_server(settings: Settings, host: str = "127.0.0.1", port: int = 7071, quiet: bool = False) -> ThreadingHTTPServer:
    httpd = ThreadingHTTPServer((host, port), HellofnHandler)
    # Handlers reach the app and settings through the server instance
    httpd.app = build_app(settings)
    httpd.settings = settings
    httpd.quiet = bool(quiet)
    return httpd


def serve(settings: Settings, host: str = "127.0.0.1", port: int = 7071, quiet: bool = False) -> None:
    httpd = make_server(settings, host=host, port=port, quiet=quiet)
    for fn in httpd.app.functions:
        logger.info("%s: [%s] http://%s:%s%s", fn.name, ",".join(fn.methods), host, port, fn.path)
    print(f"hellofn server listening on http://{host}:{port}", flush=True)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.server_close()

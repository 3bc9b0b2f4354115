"""
Local HTTP/HTTPS fixture servers for browser tests.

Each FixtureServer wraps a small Flask app served by a threaded Werkzeug
server in a daemon thread. Static files come from an asset directory;
tests can layer per-test overrides on top (custom routes, redirects, basic
auth, CSP headers, gzip) and drop them all with reset() without restarting
the listener.

    server = FixtureServer.create(assets_dir, 8907)
    server.set_route("/empty.html", lambda request: ("", 404))
    ...
    server.reset()
    server.stop()
"""

from __future__ import annotations

import dataclasses
import gzip
import logging
import os
import socket
import threading
from typing import Callable

import flask
from werkzeug.serving import make_server

from browser_fixtures.configurations.configuration_constants import (
    CacheHeaders,
    ServerDefaults,
)

logger = logging.getLogger(__name__)

RouteHandler = Callable[[flask.Request], object]

HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS", "PATCH"]


class FixtureServerError(RuntimeError):
    """Raised when a fixture server cannot bind its port."""


class ServerResetError(RuntimeError):
    """Raised in wait_for_request when the server is reset while waiting."""


@dataclasses.dataclass
class RequestRecord:
    method: str
    path: str
    headers: dict
    body: bytes


def _normalize_path(path: str) -> str:
    return path if path.startswith("/") else "/" + path


def _bind_socket(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
        sock.listen(128)
    except OSError as e:
        sock.close()
        raise FixtureServerError(
            f"Could not bind fixture server to {host}:{port}: {e.strerror or e}"
        ) from e
    return sock


class FixtureServer:
    def __init__(
        self,
        assets_dir: str,
        port: int,
        scheme: str = "http",
        ssl_context=None,
    ):
        self.assets_dir = os.path.abspath(assets_dir)
        self.port = port
        self.scheme = scheme
        self.prefix = f"{scheme}://{ServerDefaults.Host}:{port}"
        self.cross_origin_prefix = f"{scheme}://{ServerDefaults.CrossOriginHost}:{port}"
        self.empty_page = f"{self.prefix}{ServerDefaults.EmptyPage}"

        self._ssl_context = ssl_context
        self._cache_dir: str | None = None

        # Per-test overrides, cleared by reset()
        self._routes: dict[str, RouteHandler] = {}
        self._redirects: dict[str, str] = {}
        self._auths: dict[str, tuple[str, str]] = {}
        self._csp: dict[str, str] = {}
        self._gzip_routes: set[str] = set()
        self._requests: dict[str, list[RequestRecord]] = {}
        self._reset_count = 0
        self._lock = threading.Condition()

        self.app = self._build_app()
        self._server = None
        self._thread: threading.Thread | None = None

    @classmethod
    def create(cls, assets_dir: str, port: int) -> FixtureServer:
        server = cls(assets_dir, port)
        server.start()
        return server

    @classmethod
    def create_https(
        cls,
        assets_dir: str,
        port: int,
        cert: str | None = None,
        key: str | None = None,
    ) -> FixtureServer:
        # Without a cert/key pair Werkzeug generates a self-signed certificate
        ssl_context = (cert, key) if cert and key else "adhoc"
        server = cls(assets_dir, port, scheme="https", ssl_context=ssl_context)
        server.start()
        return server

    @property
    def running(self) -> bool:
        return self._server is not None

    def start(self):
        if self._server is not None:
            return

        sock = _bind_socket(ServerDefaults.BindHost, self.port)
        try:
            self._server = make_server(
                ServerDefaults.BindHost,
                self.port,
                self.app,
                threaded=True,
                ssl_context=self._ssl_context,
                fd=sock.fileno(),
            )
        finally:
            # Werkzeug duplicates the descriptor
            sock.close()

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name=f"fixture-server-{self.port}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Fixture server listening at {self.prefix}")

    def stop(self):
        if self._server is None:
            return

        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        logger.info(f"Fixture server at {self.prefix} stopped")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def enable_http_cache(self, cache_dir: str):
        """Serve files under cache_dir with long-lived, conditional caching."""
        self._cache_dir = os.path.abspath(cache_dir)

    def set_route(self, path: str, handler: RouteHandler):
        with self._lock:
            self._routes[_normalize_path(path)] = handler

    def set_redirect(self, from_path: str, to: str):
        with self._lock:
            self._redirects[_normalize_path(from_path)] = to

    def set_auth(self, path: str, username: str, password: str):
        with self._lock:
            self._auths[_normalize_path(path)] = (username, password)

    def set_csp(self, path: str, policy: str):
        with self._lock:
            self._csp[_normalize_path(path)] = policy

    def enable_gzip(self, path: str):
        with self._lock:
            self._gzip_routes.add(_normalize_path(path))

    def reset(self):
        """Drop every per-test override; the listener keeps running."""
        with self._lock:
            self._routes.clear()
            self._redirects.clear()
            self._auths.clear()
            self._csp.clear()
            self._gzip_routes.clear()
            self._requests.clear()
            self._reset_count += 1
            self._lock.notify_all()

    def wait_for_request(self, path: str, timeout: float = 5.0) -> RequestRecord:
        """
        Return the oldest unconsumed request for path, waiting for one to arrive.

        Raises TimeoutError if nothing arrives within timeout seconds and
        ServerResetError if reset() runs while waiting.
        """
        path = _normalize_path(path)
        with self._lock:
            reset_count = self._reset_count
            arrived = self._lock.wait_for(
                lambda: bool(self._requests.get(path))
                or self._reset_count != reset_count,
                timeout=timeout,
            )
            if self._reset_count != reset_count:
                raise ServerResetError(f"Server has been reset while waiting for {path}")
            if not arrived:
                raise TimeoutError(
                    f"No request for {path} on {self.prefix} within {timeout}s"
                )
            return self._requests[path].pop(0)

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def _build_app(self) -> flask.Flask:
        app = flask.Flask(__name__, static_folder=None)

        @app.route("/", defaults={"subpath": ""}, methods=HTTP_METHODS)
        @app.route("/<path:subpath>", methods=HTTP_METHODS)
        def handle(subpath):
            return self._handle(flask.request)

        return app

    def _record(self, request: flask.Request):
        record = RequestRecord(
            method=request.method,
            path=request.path,
            headers=dict(request.headers),
            body=request.get_data(),
        )
        with self._lock:
            self._requests.setdefault(request.path, []).append(record)
            self._lock.notify_all()

    def _handle(self, request: flask.Request):
        path = request.path
        self._record(request)

        # reset() may run on the test thread while this request is in flight
        with self._lock:
            redirect = self._redirects.get(path)
            credentials = self._auths.get(path)
            handler = self._routes.get(path)
            csp = self._csp.get(path)
            gzipped = path in self._gzip_routes

        if credentials is not None:
            username, password = credentials
            auth = request.authorization
            if auth is None or auth.username != username or auth.password != password:
                response = flask.Response("HTTP Error 401 Unauthorized: Access is denied", 401)
                response.headers["WWW-Authenticate"] = 'Basic realm="Secure Area"'
                return response

        if redirect is not None:
            return flask.redirect(redirect, code=302)

        if handler is not None:
            response = flask.make_response(handler(request))
        else:
            response = self._serve_file(path)

        if csp is not None:
            response.headers["Content-Security-Policy"] = csp

        if gzipped and response.status_code == 200:
            response.direct_passthrough = False
            response.set_data(gzip.compress(response.get_data()))
            response.headers["Content-Encoding"] = "gzip"

        return response

    def _serve_file(self, path: str) -> flask.Response:
        relative = path.lstrip("/")
        file_path = os.path.abspath(os.path.join(self.assets_dir, relative))
        if not file_path.startswith(self.assets_dir + os.sep) or not os.path.isfile(file_path):
            return flask.Response(f"File not found: {path}", 404)

        cached = self._cache_dir is not None and file_path.startswith(
            self._cache_dir + os.sep
        )
        if cached:
            response = flask.send_from_directory(self.assets_dir, relative, conditional=True)
            response.headers["Cache-Control"] = CacheHeaders.Cached
        else:
            response = flask.send_from_directory(
                self.assets_dir, relative, conditional=False, etag=False
            )
            response.headers["Cache-Control"] = CacheHeaders.Uncached
        return response

    def __repr__(self):
        return f"FixtureServer({self.prefix!r}, running={self.running})"


def start_fixture_servers(
    assets_dir: str,
    cache_dir: str | None = None,
    port: int = ServerDefaults.Port,
    cert: str | None = None,
    key: str | None = None,
) -> tuple[FixtureServer, FixtureServer]:
    """Start the plain server on port and the TLS server on port + 1."""
    if cache_dir is None:
        cache_dir = os.path.join(assets_dir, ServerDefaults.CacheSubdir)

    server = FixtureServer.create(assets_dir, port)
    try:
        https_server = FixtureServer.create_https(assets_dir, port + 1, cert=cert, key=key)
    except BaseException:
        server.stop()
        raise

    server.enable_http_cache(cache_dir)
    https_server.enable_http_cache(cache_dir)
    return server, https_server

"""
HTTP JSON API over a `ConfigEditor`.

Routes:
  GET  /api/get_config_paths
  POST /api/set_active_config_path   {"path": ...}
  GET  /api/get_functional_configs
  GET  /api/get_top_keys?filename=
  GET  /api/get_content?filename=&path=     (text/plain)
  POST /api/save_content             {"filename", "content", "path"?}
  POST /api/check_config
  POST /api/restart_singbox

Requests are served on separate threads; they share only the editor's
active-directory handle.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable
from urllib.parse import parse_qs, urlparse

from .editor import ConfigEditor
from .errors import (
    InvalidDirectory,
    InvalidDocument,
    InvalidFilename,
    MalformedPath,
    NoActiveDirectory,
    PathNotFound,
    PersistFailure,
    SbconfError,
    ServiceError,
    WriteFailure,
)
from .workspace import DiscoveryResult

logger = logging.getLogger(__name__)

_MAX_BODY = 16 * 1024 * 1024

Route = Callable[[dict[str, list[str]], dict[str, Any]], tuple[HTTPStatus, Any]]

# Most specific first.
_ERROR_STATUS: tuple[tuple[type[SbconfError], HTTPStatus], ...] = (
    (NoActiveDirectory, HTTPStatus.SERVICE_UNAVAILABLE),
    (InvalidFilename, HTTPStatus.FORBIDDEN),
    (PathNotFound, HTTPStatus.NOT_FOUND),
    (PersistFailure, HTTPStatus.INTERNAL_SERVER_ERROR),
    (ServiceError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (InvalidDirectory, HTTPStatus.BAD_REQUEST),
    (InvalidDocument, HTTPStatus.BAD_REQUEST),
    (MalformedPath, HTTPStatus.BAD_REQUEST),
    (WriteFailure, HTTPStatus.BAD_REQUEST),
)


def error_status(exc: SbconfError) -> HTTPStatus:
    for exc_type, status in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


class ApiError(Exception):
    """Request-level failure with an explicit status."""

    def __init__(self, message: str, status: HTTPStatus) -> None:
        super().__init__(message)
        self.status = status


def _success(message: str) -> dict[str, str]:
    return {"status": "success", "message": message}


class ConfigApi:
    """Route table; each handler returns `(status, payload)`."""

    def __init__(self, editor: ConfigEditor, discovery: DiscoveryResult) -> None:
        self.editor = editor
        self.discovery = discovery
        self.routes: dict[tuple[str, str], Route] = {
            ("GET", "/api/get_config_paths"): self.get_config_paths,
            ("POST", "/api/set_active_config_path"): self.set_active_config_path,
            ("GET", "/api/get_functional_configs"): self.get_functional_configs,
            ("GET", "/api/get_top_keys"): self.get_top_keys,
            ("GET", "/api/get_content"): self.get_content,
            ("POST", "/api/save_content"): self.save_content,
            ("POST", "/api/check_config"): self.check_config,
            ("POST", "/api/restart_singbox"): self.restart_singbox,
        }

    def allowed_methods(self, path: str) -> list[str]:
        return sorted(m for m, p in self.routes if p == path)

    def get_config_paths(self, query, body):
        return HTTPStatus.OK, self.discovery.to_dict(self.editor.active.get())

    def set_active_config_path(self, query, body):
        path = body.get("path")
        if not isinstance(path, str) or not path:
            raise ApiError("Missing 'path' field", HTTPStatus.BAD_REQUEST)
        selected = self.editor.select_directory(path)
        return HTTPStatus.OK, _success(f"Configuration directory set to '{selected}'.")

    def get_functional_configs(self, query, body):
        result = self.editor.overview()
        payload = result.to_dict()
        payload["active_config_path"] = str(self.editor.active.require())
        return HTTPStatus.OK, payload

    def get_top_keys(self, query, body):
        filename = _query_param(query, "filename")
        if not filename:
            raise ApiError("Missing 'filename' parameter", HTTPStatus.BAD_REQUEST)
        return HTTPStatus.OK, self.editor.top_keys(filename).to_dict()

    def get_content(self, query, body):
        filename = _query_param(query, "filename")
        return HTTPStatus.OK, self.editor.read(filename, _query_param(query, "path"))

    def save_content(self, query, body):
        filename = body.get("filename")
        content = body.get("content")
        path = body.get("path") or ""
        if not isinstance(filename, str) or not isinstance(content, str) or not isinstance(path, str):
            raise ApiError("Request body needs string 'filename' and 'content'", HTTPStatus.BAD_REQUEST)
        self.editor.save(filename, content, path)
        return HTTPStatus.OK, _success("File saved.")

    def check_config(self, query, body):
        self.editor.check()
        return HTTPStatus.OK, _success("Configuration check passed.")

    def restart_singbox(self, query, body):
        self.editor.restart()
        return HTTPStatus.OK, _success("sing-box service restarted.")


def _query_param(query: dict[str, list[str]], name: str) -> str:
    values = query.get(name)
    return values[0] if values else ""


def make_handler(api: ConfigApi) -> type[BaseHTTPRequestHandler]:
    class ConfigRequestHandler(BaseHTTPRequestHandler):
        server_version = "sbconf"

        def do_GET(self) -> None:
            self._dispatch("GET")

        def do_POST(self) -> None:
            self._dispatch("POST")

        def log_message(self, format: str, *args: Any) -> None:
            logger.info("%s %s", self.address_string(), format % args)

        def _dispatch(self, method: str) -> None:
            url = urlparse(self.path)
            handler = api.routes.get((method, url.path))
            if handler is None:
                allowed = api.allowed_methods(url.path)
                if allowed:
                    self._send_json(HTTPStatus.METHOD_NOT_ALLOWED, {"error": f"Only {', '.join(allowed)} allowed"})
                else:
                    self._send_json(HTTPStatus.NOT_FOUND, {"error": "Not found"})
                return

            try:
                body = self._read_json_body() if method == "POST" else {}
                status, payload = handler(parse_qs(url.query), body)
            except ApiError as e:
                self._send_json(e.status, {"error": str(e)})
                return
            except SbconfError as e:
                self._send_json(error_status(e), {"error": str(e)})
                return
            except OSError as e:
                logger.error("I/O error serving %s: %s", url.path, e)
                self._send_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": f"I/O error: {e}"})
                return

            if isinstance(payload, str):
                self._send_text(status, payload)
            else:
                self._send_json(status, payload)

        def _read_json_body(self) -> dict[str, Any]:
            length = int(self.headers.get("Content-Length") or 0)
            if length > _MAX_BODY:
                raise ApiError("Request body too large", HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
            raw = self.rfile.read(length) if length else b""
            if not raw:
                return {}
            try:
                data = json.loads(raw.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise ApiError("Invalid request body: cannot parse JSON", HTTPStatus.BAD_REQUEST) from e
            if not isinstance(data, dict):
                raise ApiError("Invalid request body: expected a JSON object", HTTPStatus.BAD_REQUEST)
            return data

        def _send_json(self, status: HTTPStatus, payload: Any) -> None:
            self._send(status, json.dumps(payload, ensure_ascii=False).encode("utf-8"), "application/json; charset=utf-8")

        def _send_text(self, status: HTTPStatus, text: str) -> None:
            self._send(status, text.encode("utf-8"), "text/plain; charset=utf-8")

        def _send(self, status: HTTPStatus, data: bytes, content_type: str) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

    return ConfigRequestHandler


def make_server(editor: ConfigEditor, discovery: DiscoveryResult, host: str, port: int) -> ThreadingHTTPServer:
    """Bound but not yet serving; pass port 0 for an ephemeral port."""
    api = ConfigApi(editor, discovery)
    server = ThreadingHTTPServer((host, port), make_handler(api))
    server.daemon_threads = True
    return server

"""HTTP front end of the gate server: request handling, listener and entry point."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any

from .config import ConfigMgr
from .dbmanager import DBManager
from .errors import ErrorCode
from .logic import Exchange, LogicSystem
from .redis_mgr import RedisMgr
from .urlcodec import parse_target
from .user_dao import UserDAO
from .user_manager import UserManager

log = logging.getLogger(__name__)

SERVER_NAME = "GateServer"
GATE_SECTION = "GateServer"
LISTEN_HOST = "0.0.0.0"
REQUEST_DEADLINE = 60.0
NOT_FOUND_BODY = b"url not found\r\n"


@dataclass
class Response:
    """Status, headers and body of an HTTP reply."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def handle_request(logic: LogicSystem, method: str, target: str, body: str | bytes = "") -> Response | None:
    """Route one request to the logic layer and build the reply.

    GET targets have their query string parsed into parameters; POST targets
    are matched as given. Other methods get no reply (None). Raises
    ValueError for a malformed escape in a GET query.
    """
    if isinstance(body, (bytes, bytearray)):
        body = bytes(body).decode("utf-8", "replace")
    verb = method.upper()
    if verb == "GET":
        path, params = parse_target(target)
        exchange = Exchange(params=params)
        found = logic.handle_get(path, exchange)
    elif verb == "POST":
        exchange = Exchange(body=body)
        found = logic.handle_post(target, exchange)
    else:
        return None

    if not found:
        return Response(HTTPStatus.NOT_FOUND, {"Content-Type": "text/plain"}, NOT_FOUND_BODY)
    headers = dict(exchange.headers)
    headers["Server"] = SERVER_NAME
    return Response(HTTPStatus.OK, headers, exchange.response_text.encode("utf-8"))


class _Listener(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], logic: LogicSystem) -> None:
        self.logic = logic
        super().__init__(address, _RequestHandler)


class _RequestHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    timeout = REQUEST_DEADLINE
    server: _Listener

    def version_string(self) -> str:
        return SERVER_NAME

    def log_message(self, format: str, *args: Any) -> None:
        log.info("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        self._dispatch()

    def do_POST(self) -> None:
        self._dispatch()

    def _read_body(self) -> bytes:
        length_text = self.headers.get("Content-Length") or "0"
        try:
            length = int(length_text)
        except ValueError:
            length = 0
        return self.rfile.read(length) if length > 0 else b""

    def _dispatch(self) -> None:
        self.close_connection = True
        body = self._read_body()
        try:
            response = handle_request(self.server.logic, self.command, self.path, body)
        except ValueError as exc:
            self.send_error(HTTPStatus.BAD_REQUEST, str(exc))
            return
        except Exception:
            log.exception("request handler failed")
            self.send_error(HTTPStatus.INTERNAL_SERVER_ERROR)
            return
        if response is None:
            return
        self.send_response_only(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(response.body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(response.body)
        self.log_request(response.status)


class GateServer:
    """Accepts HTTP connections on all IPv4 addresses and serves each in a thread."""

    def __init__(self, port: int, logic: LogicSystem) -> None:
        self._httpd = _Listener((LISTEN_HOST, port), logic)
        self._lock = threading.Lock()
        self._serving = False
        self._closed = False

    @property
    def port(self) -> int:
        return self._httpd.server_address[1]

    def serve_forever(self) -> None:
        """Handle requests until shutdown() is called."""
        with self._lock:
            if self._closed:
                return
            self._serving = True
        self._httpd.serve_forever()

    def shutdown(self) -> None:
        """Stop serving and release the listening socket."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            serving = self._serving
        if serving:
            self._httpd.shutdown()
        self._httpd.server_close()

    def __enter__(self) -> "GateServer":
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()


def _verification_unavailable(email: str) -> int:
    log.warning("no verification service is reachable for %s", email)
    return int(ErrorCode.RPC_FAILED)


def build_logic(config: ConfigMgr) -> LogicSystem:
    """Open the database pool and Redis pool and wire up the request logic.

    Raises ValueError or DBPoolError if the database cannot be set up.
    """
    manager = DBManager(config)
    manager.init_pool()
    dao = UserDAO(manager)
    redis_mgr = RedisMgr.from_config(config)
    return LogicSystem(UserManager(dao), dao, redis_mgr, _verification_unavailable)


def _gate_port(config: ConfigMgr) -> int:
    text = config[GATE_SECTION]["Port"]
    try:
        port = int(text) if text else 0
    except ValueError:
        raise ValueError(f"invalid gate server port: {text!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"gate server port out of range: {port}")
    return port


def main(argv: Sequence[str] | None = None) -> int:
    """Run the gate server until SIGINT or SIGTERM; returns the exit status."""
    parser = argparse.ArgumentParser(prog="gatesrv", description="HTTP gate server")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path.cwd() / "config.ini",
        help="path of the INI configuration file",
    )
    args = parser.parse_args(argv)

    try:
        print(f"Config path: {args.config}")
        config = ConfigMgr.from_file(args.config)
        print(config.dump(), end="")
        port = _gate_port(config)
        logic = build_logic(config)
        server = GateServer(port, logic)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    stop = threading.Event()

    def _on_signal(signum: int, frame: object) -> None:
        stop.set()

    previous: dict[int, Any] = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, _on_signal)
        except ValueError:
            pass

    thread = threading.Thread(target=server.serve_forever, name="gate-server", daemon=True)
    thread.start()
    try:
        while not stop.wait(0.5):
            if not thread.is_alive():
                break
    finally:
        server.shutdown()
        thread.join()
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return 0
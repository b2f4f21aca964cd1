# -*- coding: utf-8 -*-

import hmac
import json
import logging
import socket
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from core.timer_engine import TimerState
from domain.models import Settings
from remote.control_page import CONTROL_PAGE_HTML
from remote.framing import TOKEN_HEADER, BadRequest, Request, Response, read_request
from services.errors import ModelUnavailableError, ServiceError
from services.timer_service import TimerService

logger = logging.getLogger(__name__)

IO_TIMEOUT_SEC = 2.0
ACCEPT_POLL_SEC = 0.05

JSON_TYPE = "application/json; charset=utf-8"
HTML_TYPE = "text/html; charset=utf-8"


def _text(status: int, body: bytes) -> Response:
    return Response(status=status, body=body)


def _json(payload: Dict[str, Any]) -> Response:
    return Response(status=200, body=json.dumps(payload).encode("utf-8"), content_type=JSON_TYPE)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def context_args(body: bytes) -> Dict[str, Any]:
    """
    Optional start/resume payload: {"projectId": int|null, "tagIds": [int]}.
    A body that does not fit is ignored as a whole.
    """
    if not body.strip():
        return {}
    try:
        data = json.loads(body.decode("utf-8"))
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}

    kwargs: Dict[str, Any] = {}
    if "projectId" in data:
        pid = data["projectId"]
        if pid is not None and not _is_int(pid):
            return {}
        kwargs["project_id"] = pid
    tags = data.get("tagIds")
    if tags is not None:
        if not isinstance(tags, list) or not all(_is_int(t) for t in tags):
            return {}
        kwargs["tag_ids"] = tags
    return kwargs


class RemoteHandler:
    """Auth + routing from a framed Request to TimerService operations."""

    def __init__(self, timer_service: TimerService, io_timeout: float = IO_TIMEOUT_SEC):
        self.timer_service = timer_service
        self.io_timeout = io_timeout
        self.routes: Dict[Tuple[str, str], Callable[[Request], TimerState]] = {
            ("GET", "/api/state"): lambda req: timer_service.get_state(),
            ("POST", "/api/toggle"): lambda req: timer_service.toggle(),
            ("POST", "/api/start"): lambda req: timer_service.start(**context_args(req.body)),
            ("POST", "/api/pause"): lambda req: timer_service.pause(),
            ("POST", "/api/resume"): lambda req: timer_service.resume(**context_args(req.body)),
            ("POST", "/api/skip"): lambda req: timer_service.skip(),
        }

    def serve(self, conn) -> None:
        """Answer exactly one request on an accepted connection."""
        conn.settimeout(self.io_timeout)
        try:
            request = read_request(conn)
        except BadRequest as e:
            logger.debug("bad request: %s", e)
            response = _text(400, b"bad request")
        else:
            response = self.handle(request)
        try:
            conn.sendall(response.encode())
        except OSError as e:
            logger.debug("failed to write response: %s", e)

    def handle(self, request: Request) -> Response:
        method = request.method
        if method.upper() == "OPTIONS":
            return _text(204, b"")

        try:
            settings = self.timer_service.get_settings()
        except ModelUnavailableError:
            return _text(500, b"error")

        # remote control off: don't reveal that anything is here
        if not settings.remote_control_enabled:
            return _text(404, b"not found")

        if method.upper() == "GET" and request.path == "/":
            return Response(status=200, body=CONTROL_PAGE_HTML.encode("utf-8"), content_type=HTML_TYPE)

        if not self._authorized(request, settings):
            return _text(401, b"unauthorized")

        op = self.routes.get((method, request.path))
        if op is None:
            return _text(404, b"not found")

        try:
            state = op(request)
        except ModelUnavailableError:
            return _text(500, b"error")
        except ServiceError as e:
            # logical failures still travel as 200 with an error envelope
            logger.warning("remote %s %s failed: %s", method, request.path, e)
            return _json({"error": str(e)})
        return _json(state.to_dict())

    @staticmethod
    def _authorized(request: Request, settings: Settings) -> bool:
        got = request.header(TOKEN_HEADER)
        if got is None:
            got = request.query_param("token")
        expected = settings.remote_control_token
        if not got or not expected:
            return False
        return hmac.compare_digest(got.encode("utf-8"), expected.encode("utf-8"))


class RemoteServer(threading.Thread):
    """
    One listener: sequential accept loop, one request per connection.
    Stopped cooperatively with stop() (flag + poll + join).
    """

    def __init__(self, handler: RemoteHandler, port: int, host: str = "0.0.0.0"):
        super().__init__(name=f"remote-control:{port}", daemon=True)
        self.handler = handler
        self.host = host
        self.port = port
        self.ready = threading.Event()
        self.bind_error: Optional[OSError] = None
        self._keep_running = threading.Event()
        self._keep_running.set()

    def run(self) -> None:
        try:
            listener = socket.create_server((self.host, self.port))
        except OSError as e:
            self.bind_error = e
            logger.error("remote control server bind failed on %s:%s: %s", self.host, self.port, e)
            self.ready.set()
            return

        listener.settimeout(ACCEPT_POLL_SEC)
        logger.info("remote control listening on %s:%s", self.host, self.port)
        self.ready.set()
        with listener:
            while self._keep_running.is_set():
                try:
                    conn, addr = listener.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    logger.debug("accept failed: %s", e)
                    self._keep_running.wait(0.2)
                    continue
                with conn:
                    self.handler.serve(conn)
        logger.info("remote control on port %s stopped", self.port)

    def stop(self) -> None:
        self._keep_running.clear()
        if self.is_alive():
            self.join()


class RemoteControl:
    """Keeps at most one RemoteServer in line with the current settings."""

    def __init__(self, handler: RemoteHandler, host: str = "0.0.0.0"):
        self.handler = handler
        self.host = host
        self._lock = threading.Lock()
        self._server: Optional[RemoteServer] = None

    @property
    def server(self) -> Optional[RemoteServer]:
        return self._server

    def apply(self, settings: Settings) -> None:
        with self._lock:
            if not settings.remote_control_enabled:
                self._stop_locked()
                return

            port = settings.remote_control_port
            current = self._server
            if current is not None and current.port == port and current.is_alive():
                return

            self._stop_locked()
            server = RemoteServer(self.handler, port, self.host)
            server.start()
            self._server = server

    def stop(self) -> None:
        with self._lock:
            self._stop_locked()

    def _stop_locked(self) -> None:
        if self._server is not None:
            self._server.stop()
            self._server = None


def local_ip() -> str:
    """Best-effort LAN address (no packets are sent)."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"

import json
import socket
from dataclasses import replace

import pytest

from remote.framing import Request
from remote.server import RemoteControl, RemoteHandler, RemoteServer, context_args

from tests.conftest import drain


def free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def enabled(settings_service):
    return settings_service.update({"remote_control_enabled": True})


@pytest.fixture
def handler(timer_service):
    return RemoteHandler(timer_service, io_timeout=1.0)


def request(method, path, token=None, query="", body=b""):
    headers = [("X-Pomodoro-Token", token)] if token is not None else []
    return Request(method=method, path=path, query=query, headers=headers, body=body)


def payload(resp):
    return json.loads(resp.body.decode())


class FakeConn:
    def __init__(self, raw: bytes):
        self.raw = raw
        self.sent = b""
        self.timeout = None

    def settimeout(self, t):
        self.timeout = t

    def recv(self, n):
        out, self.raw = self.raw[:n], self.raw[n:]
        return out

    def sendall(self, data):
        self.sent += data


class TestContextArgs:
    def test_empty(self):
        assert context_args(b"") == {}

    def test_full(self):
        assert context_args(b'{"projectId": 2, "tagIds": [1, 3]}') == {"project_id": 2, "tag_ids": [1, 3]}

    def test_null_project_clears(self):
        assert context_args(b'{"projectId": null}') == {"project_id": None}

    @pytest.mark.parametrize("body", [b"nope", b"[1]", b'{"projectId": "x"}', b'{"tagIds": [true]}'])
    def test_invalid_ignored(self, body):
        assert context_args(body) == {}


class TestHandler:
    def test_options_always_allowed(self, handler):
        assert handler.handle(request("OPTIONS", "/api/toggle")).status == 204

    def test_disabled_is_not_found(self, handler, settings_service):
        token = settings_service.get().remote_control_token
        assert handler.handle(request("GET", "/api/state", token)).status == 404
        assert handler.handle(request("GET", "/")).status == 404

    def test_page_served_without_token(self, handler, enabled):
        resp = handler.handle(request("GET", "/"))
        assert resp.status == 200
        assert resp.content_type.startswith("text/html")
        assert b"/api/toggle" in resp.body

    def test_missing_or_wrong_token(self, handler, enabled):
        assert handler.handle(request("GET", "/api/state")).status == 401
        assert handler.handle(request("GET", "/api/state", "wrong")).status == 401

    def test_header_token(self, handler, enabled):
        resp = handler.handle(request("GET", "/api/state", enabled.remote_control_token))
        assert resp.status == 200
        body = payload(resp)
        assert body["phase"] == "focus"
        assert body["remainingSeconds"] == 1500

    def test_query_token(self, handler, enabled):
        q = f"token={enabled.remote_control_token}"
        assert handler.handle(request("GET", "/api/state", query=q)).status == 200

    def test_unknown_route(self, handler, enabled):
        token = enabled.remote_control_token
        assert handler.handle(request("GET", "/api/nope", token)).status == 404
        assert handler.handle(request("GET", "/api/toggle", token)).status == 404

    def test_method_case_matters_for_routes(self, handler, enabled):
        token = enabled.remote_control_token
        assert handler.handle(request("get", "/api/state", token)).status == 404
        assert handler.handle(request("post", "/api/toggle", token)).status == 404

    def test_options_and_page_ignore_method_case(self, handler, enabled):
        assert handler.handle(request("options", "/api/state")).status == 204
        assert handler.handle(request("get", "/")).status == 200

    def test_toggle_matches_local_toggle(self, handler, enabled, timer_service, clock):
        token = enabled.remote_control_token
        started = payload(handler.handle(request("POST", "/api/toggle", token)))
        assert started["isRunning"] is True
        clock.advance(20)
        paused = payload(handler.handle(request("POST", "/api/toggle", token)))
        assert paused["isRunning"] is False
        assert paused["interruptions"] == 1
        assert timer_service.get_state().to_dict() == paused

    def test_start_with_context(self, handler, enabled, catalog_service):
        p = catalog_service.upsert_project("Remote")
        body = json.dumps({"projectId": p.id}).encode()
        resp = handler.handle(request("POST", "/api/start", enabled.remote_control_token, body=body))
        assert payload(resp)["currentProjectId"] == p.id

    def test_skip_publishes_events(self, handler, enabled, events):
        drain(events)
        resp = handler.handle(request("POST", "/api/skip", enabled.remote_control_token))
        assert payload(resp)["phase"] == "short_break"
        assert len(drain(events)) == 3

    def test_busy_model_is_500(self, handler, enabled, guard):
        with guard.hold():
            resp = handler.handle(request("GET", "/api/state", enabled.remote_control_token))
        assert resp.status == 500

    def test_serve_bad_request(self, handler):
        conn = FakeConn(b"garbage\r\n\r\n")
        handler.serve(conn)
        assert conn.sent.startswith(b"HTTP/1.1 400 Bad Request")
        assert conn.timeout == 1.0

    def test_serve_round_trip(self, handler, enabled):
        raw = (
            "POST /api/pause HTTP/1.1\r\n"
            f"X-Pomodoro-Token: {enabled.remote_control_token}\r\n\r\n"
        ).encode()
        conn = FakeConn(raw)
        handler.serve(conn)
        head, _, body = conn.sent.partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 200 OK")
        assert json.loads(body)["isRunning"] is False


class TestListener:
    def test_loopback_request(self, handler, enabled):
        port = free_port()
        server = RemoteServer(handler, port, host="127.0.0.1")
        server.start()
        assert server.ready.wait(2)
        assert server.bind_error is None
        try:
            with socket.create_connection(("127.0.0.1", port), timeout=2) as c:
                c.sendall(
                    (
                        f"GET /api/state?token={enabled.remote_control_token} HTTP/1.1\r\n"
                        "Host: x\r\n\r\n"
                    ).encode()
                )
                data = b""
                while True:
                    chunk = c.recv(4096)
                    if not chunk:
                        break
                    data += chunk
        finally:
            server.stop()
        assert data.startswith(b"HTTP/1.1 200 OK")
        assert not server.is_alive()

    def test_bind_failure_reported(self, handler):
        with socket.socket() as taken:
            taken.bind(("127.0.0.1", 0))
            taken.listen()
            port = taken.getsockname()[1]
            server = RemoteServer(handler, port, host="127.0.0.1")
            server.start()
            assert server.ready.wait(2)
            server.join(2)
        assert server.bind_error is not None


class TestRemoteControl:
    def test_follows_settings(self, handler, enabled):
        control = RemoteControl(handler, host="127.0.0.1")
        first = free_port()
        control.apply(replace(enabled, remote_control_port=first))
        try:
            server = control.server
            assert server is not None and server.port == first
            assert server.ready.wait(2)

            control.apply(replace(enabled, remote_control_port=first))
            assert control.server is server

            second = free_port()
            control.apply(replace(enabled, remote_control_port=second))
            assert control.server.port == second
            assert not server.is_alive()

            control.apply(replace(enabled, remote_control_enabled=False))
            assert control.server is None
        finally:
            control.stop()

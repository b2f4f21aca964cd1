import pytest

from remote.framing import (
    MAX_HEADERS,
    BadRequest,
    Request,
    Response,
    parse_head,
    read_request,
)


class ChunkedSocket:
    """Hands out pre-recorded chunks, then EOF."""

    def __init__(self, *chunks: bytes):
        self.chunks = list(chunks)

    def recv(self, n: int) -> bytes:
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if len(chunk) > n:
            self.chunks.insert(0, chunk[n:])
            chunk = chunk[:n]
        return chunk


class TimeoutSocket:
    def recv(self, n: int) -> bytes:
        raise TimeoutError("timed out")


class TestParseHead:
    def test_request_line_and_query(self):
        req = parse_head(b"GET /api/state?token=abc&x=1 HTTP/1.1\r\nHost: h")
        assert req.method == "GET"
        assert req.path == "/api/state"
        assert req.query_param("token") == "abc"
        assert req.query_param("missing") is None
        assert req.header("host") == "h"

    def test_query_token_not_decoded(self):
        req = parse_head(b"GET /?token=a%20b HTTP/1.1")
        assert req.query_param("token") == "a%20b"

    @pytest.mark.parametrize(
        "head",
        [
            b"GET /",
            b"GET / HTTP/2.0",
            b"G(T / HTTP/1.1",
            b"GET / HTTP/1.1\r\nNoColon",
            b"GET / HTTP/1.1\r\nBad Name: x",
            b"\xff\xfe / HTTP/1.1",
        ],
    )
    def test_malformed(self, head):
        with pytest.raises(BadRequest):
            parse_head(head)

    def test_too_many_headers(self):
        lines = [f"X-{i}: v" for i in range(MAX_HEADERS + 1)]
        head = ("GET / HTTP/1.1\r\n" + "\r\n".join(lines)).encode()
        with pytest.raises(BadRequest):
            parse_head(head)


class TestReadRequest:
    def test_head_split_across_reads(self):
        sock = ChunkedSocket(b"POST /api/tog", b"gle HTTP/1.1\r\nX-Pomodoro-Token: t\r", b"\n\r\n")
        req = read_request(sock)
        assert req.path == "/api/toggle"
        assert req.header("x-pomodoro-token") == "t"
        assert req.body == b""

    def test_body_partly_buffered_with_head(self):
        body = b'{"projectId": 1}'
        raw = b"POST /api/start HTTP/1.1\r\nContent-Length: %d\r\n\r\n" % len(body)
        sock = ChunkedSocket(raw + body[:5], body[5:])
        assert read_request(sock).body == body

    def test_extra_bytes_truncated(self):
        sock = ChunkedSocket(b"POST / HTTP/1.1\r\nContent-Length: 2\r\n\r\nabcdef")
        assert read_request(sock).body == b"ab"

    def test_short_body_returned_as_received(self):
        sock = ChunkedSocket(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")
        assert read_request(sock).body == b"abc"

    def test_invalid_content_length_means_no_body(self):
        sock = ChunkedSocket(b"POST / HTTP/1.1\r\nContent-Length: nope\r\n\r\nabc")
        assert read_request(sock).body == b""

    def test_oversized_body_rejected(self):
        sock = ChunkedSocket(b"POST / HTTP/1.1\r\nContent-Length: 999999999\r\n\r\n")
        with pytest.raises(BadRequest):
            read_request(sock)

    def test_no_terminator(self):
        with pytest.raises(BadRequest):
            read_request(ChunkedSocket(b"GET / HTTP/1.1\r\nHost: x\r\n"))

    def test_header_cap(self):
        sock = ChunkedSocket(b"GET / HTTP/1.1\r\n" + b"X: " + b"a" * 9000 + b"\r\n\r\n")
        with pytest.raises(BadRequest):
            read_request(sock)

    def test_timeout_is_eof(self):
        with pytest.raises(BadRequest):
            read_request(TimeoutSocket())


class TestResponse:
    def test_encode(self):
        raw = Response(status=401, body=b"unauthorized").encode()
        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode().split("\r\n")
        assert lines[0] == "HTTP/1.1 401 Unauthorized"
        assert "Content-Length: 12" in lines
        assert "Connection: close" in lines
        assert "Access-Control-Allow-Origin: *" in lines
        assert body == b"unauthorized"

    def test_no_content(self):
        raw = Response(status=204).encode()
        assert raw.startswith(b"HTTP/1.1 204 No Content\r\n")
        assert raw.endswith(b"\r\n\r\n")


def test_request_defaults():
    req = Request(method="GET", path="/")
    assert req.header("anything") is None
    assert req.query_param("token") is None

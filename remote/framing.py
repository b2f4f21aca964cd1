# -*- coding: utf-8 -*-

"""
Request framing for the remote control protocol.

Reads an HTTP/1.1-shaped request off anything with a ``recv(n)`` method:
headers up to a blank line (bounded buffer), then a Content-Length body.
Knows nothing about routing or auth.
"""

import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import List, Optional, Tuple

MAX_HEADER_BYTES = 8192
MAX_HEADERS = 32
MAX_BODY_BYTES = 64 * 1024
BODY_CHUNK = 4096

HEADER_END = b"\r\n\r\n"
TOKEN_HEADER = "X-Pomodoro-Token"

_METHOD_RE = re.compile(r"^[!#$%&'*+.^_`|~0-9A-Za-z-]+$")

CORS_HEADERS: List[Tuple[str, str]] = [
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Headers", f"Content-Type, {TOKEN_HEADER}"),
    ("Access-Control-Allow-Methods", "GET, POST, OPTIONS"),
]


class BadRequest(Exception):
    pass


@dataclass
class Request:
    method: str
    path: str
    query: str = ""
    version: str = "HTTP/1.1"
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for k, v in self.headers:
            if k.lower() == name:
                return v
        return None

    def query_param(self, key: str) -> Optional[str]:
        """Raw value of the first ``key=`` pair; no percent-decoding."""
        if not self.query:
            return None
        for part in self.query.split("&"):
            k, _, v = part.partition("=")
            if k == key:
                return v
        return None


@dataclass
class Response:
    status: int
    body: bytes = b""
    content_type: str = "text/plain; charset=utf-8"

    def encode(self) -> bytes:
        reason = HTTPStatus(self.status).phrase
        lines = [
            f"HTTP/1.1 {self.status} {reason}",
            f"Content-Type: {self.content_type}",
            f"Content-Length: {len(self.body)}",
            "Connection: close",
        ]
        lines += [f"{k}: {v}" for k, v in CORS_HEADERS]
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("ascii") + self.body


def split_target(target: str) -> Tuple[str, str]:
    path, _, query = target.partition("?")
    return path or "/", query


def parse_head(head: bytes) -> Request:
    """Parse the request line and headers (terminator already stripped)."""
    try:
        text = head.decode("utf-8")
    except UnicodeDecodeError:
        raise BadRequest("request head is not valid UTF-8")

    lines = text.split("\r\n")
    parts = lines[0].split(" ")
    if len(parts) != 3:
        raise BadRequest("malformed request line")
    method, target, version = parts
    if not _METHOD_RE.match(method) or not target or not version.startswith("HTTP/1."):
        raise BadRequest("malformed request line")

    headers: List[Tuple[str, str]] = []
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if not sep or not name or name != name.strip() or " " in name:
            raise BadRequest(f"malformed header line: {line!r}")
        headers.append((name, value.strip()))
    if len(headers) > MAX_HEADERS:
        raise BadRequest("too many headers")

    path, query = split_target(target)
    return Request(method=method, path=path, query=query, version=version, headers=headers)


def _recv(sock, n: int) -> bytes:
    try:
        return sock.recv(n)
    except OSError:  # timeouts included
        return b""


def read_request(sock, max_header_bytes: int = MAX_HEADER_BYTES) -> Request:
    """
    Read one request from ``sock``.
    Raises BadRequest when no header terminator shows up within the cap,
    when the head cannot be parsed, or when the declared body is too large.
    A body cut short by the peer is returned as received.
    """
    buf = b""
    header_end = -1
    while len(buf) < max_header_bytes:
        data = _recv(sock, max_header_bytes - len(buf))
        if not data:
            break
        buf += data
        idx = buf.find(HEADER_END)
        if idx != -1:
            header_end = idx + len(HEADER_END)
            break

    if header_end == -1:
        raise BadRequest("no header terminator")

    req = parse_head(buf[: header_end - len(HEADER_END)])

    try:
        content_length = int(req.header("Content-Length") or 0)
    except ValueError:
        content_length = 0
    if content_length > MAX_BODY_BYTES:
        raise BadRequest("body too large")

    if content_length > 0:
        body = buf[header_end:]
        while len(body) < content_length:
            chunk = _recv(sock, min(content_length - len(body), BODY_CHUNK))
            if not chunk:
                break
            body += chunk
        req.body = body[:content_length]

    return req

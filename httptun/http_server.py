"""HTTP endpoint that queues packets posted to /send and hands them out on /poll."""

from __future__ import annotations

import logging
import re
import threading
from collections import deque
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

logger = logging.getLogger(__name__)

SEND_PATH = "/send"
POLL_PATH = "/poll"
OCTET_STREAM = "application/octet-stream"
NOT_FOUND_BODY = b"Not Found"

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def parse_port(port_str: str) -> int:
    """Read a port number the way atoi does: leading digits, junk after them ignored."""
    match = _LEADING_INT.match(port_str)
    value = int(match.group(1)) if match else 0
    if not 0 < value <= 65535:
        raise ValueError(f"invalid port: {port_str!r}")
    return value


class PacketQueue:
    """Thread-safe FIFO of packets."""

    def __init__(self) -> None:
        self._items: deque[bytes] = deque()
        self._lock = threading.Lock()

    def put(self, data: bytes) -> None:
        with self._lock:
            self._items.append(bytes(data))

    def get(self) -> bytes | None:
        """Remove and return the oldest packet, or None when the queue is empty."""
        with self._lock:
            return self._items.popleft() if self._items else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class _QueueingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, packets: PacketQueue) -> None:
        self.packets = packets
        super().__init__(address, _TunnelRequestHandler)


class _TunnelRequestHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    server: _QueueingHTTPServer

    @property
    def _route(self) -> str:
        return self.path.split("?", 1)[0]

    def do_POST(self) -> None:
        try:
            body = self._read_body()
        except ValueError:
            self.send_error(HTTPStatus.BAD_REQUEST)
            return
        if self._route != SEND_PATH:
            self._respond(HTTPStatus.NOT_FOUND, NOT_FOUND_BODY)
            return
        self.server.packets.put(body)
        logger.info("[server] queued %d bytes from /send", len(body))
        self._respond(HTTPStatus.OK)

    def do_GET(self) -> None:
        if self._route != POLL_PATH:
            self._not_found()
            return
        packet = self.server.packets.get()
        if packet is None:
            self._respond(HTTPStatus.NO_CONTENT)
            return
        logger.info("[server] /poll returning %d bytes", len(packet))
        self._respond(HTTPStatus.OK, packet, OCTET_STREAM)

    def _not_found(self) -> None:
        try:
            self._read_body()
        except ValueError:
            self.close_connection = True
        self._respond(HTTPStatus.NOT_FOUND, NOT_FOUND_BODY)

    do_PUT = do_DELETE = do_PATCH = do_OPTIONS = _not_found

    def do_HEAD(self) -> None:
        self.send_response(HTTPStatus.NOT_FOUND)
        self.send_header("Content-Length", str(len(NOT_FOUND_BODY)))
        self.end_headers()

    def _read_body(self) -> bytes:
        if "chunked" in self.headers.get("Transfer-Encoding", "").lower():
            chunks = []
            while True:
                size_line = self.rfile.readline()
                size = int(size_line.split(b";", 1)[0].strip() or b"0", 16)
                if size == 0:
                    while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                        pass
                    return b"".join(chunks)
                chunks.append(self.rfile.read(size))
                self.rfile.readline()
        length = int(self.headers.get("Content-Length") or 0)
        if length < 0:
            raise ValueError("negative Content-Length")
        return self.rfile.read(length) if length else b""

    def _respond(self, status: HTTPStatus, body: bytes = b"", content_type: str | None = None) -> None:
        self.send_response(status)
        if content_type:
            self.send_header("Content-Type", content_type)
        if status != HTTPStatus.NO_CONTENT:
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class TunnelHTTPServer:
    """Background HTTP server holding a queue of tunnelled packets."""

    def __init__(self, port: int | str, packets: PacketQueue | None = None, host: str = "0.0.0.0") -> None:
        self.port = parse_port(str(port))
        self.host = host
        self.packets = packets if packets is not None else PacketQueue()
        self._server: _QueueingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._server is not None

    def start(self) -> None:
        """Bind the port and serve requests on a background thread."""
        if self._server is not None:
            raise RuntimeError("server already running")
        try:
            server = _QueueingHTTPServer((self.host, self.port), self.packets)
        except OSError:
            logger.error("[HTTP-SRV] FAILED to start on %d", self.port)
            raise
        self._server = server
        self._thread = threading.Thread(target=server.serve_forever, name="http-server", daemon=True)
        self._thread.start()
        logger.info("[HTTP-SRV] listening on port %d", self.port)

    def stop(self) -> None:
        if self._server is None:
            return
        server, self._server = self._server, None
        server.shutdown()
        server.server_close()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def __enter__(self) -> "TunnelHTTPServer":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()
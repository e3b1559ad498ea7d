"""HTTP client that posts packets to /send and fetches them from /poll."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import ProxyHandler, Request, build_opener

logger = logging.getLogger(__name__)

SEND_PATH = "/send"
POLL_PATH = "/poll"
MAX_PACKET = 2048
HEARTBEAT_INTERVAL = 30.0
POLL_TIMEOUT = 0.5
OCTET_STREAM = "application/octet-stream"


def _endpoint(base_url: str, path: str) -> str:
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"not an HTTP URL: {base_url!r}")
    return base_url + path


class HttpTunnelClient:
    """Sends packets to one peer and polls packets from another, one request at a time."""

    def __init__(
        self,
        *,
        max_packet: int = MAX_PACKET,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        poll_timeout: float = POLL_TIMEOUT,
        send_timeout: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_packet = max_packet
        self.heartbeat_interval = heartbeat_interval
        self.poll_timeout = poll_timeout
        self.send_timeout = send_timeout
        self.send_url: str | None = None
        self.poll_url: str | None = None
        self._clock = clock
        self._last_heartbeat = 0.0
        self._lock = threading.Lock()
        self._opener = build_opener(ProxyHandler({}))

    def configure_send(self, base_url: str) -> None:
        logger.info("[H-CLT] init_send -> %s%s", base_url, SEND_PATH)
        self.send_url = _endpoint(base_url, SEND_PATH)

    def configure_poll(self, base_url: str) -> None:
        logger.info("[H-CLT] init_poll -> %s%s", base_url, POLL_PATH)
        self.poll_url = _endpoint(base_url, POLL_PATH)

    def poll(self) -> bytes | None:
        """Fetch one packet; None when nothing came, the request failed or it was too large."""
        if self.poll_url is None:
            raise RuntimeError("poll endpoint not configured")
        request = Request(self.poll_url, headers={"Content-Type": OCTET_STREAM}, method="GET")
        limit = self.max_packet + 1
        with self._lock:
            try:
                with self._opener.open(request, timeout=self.poll_timeout) as response:
                    body = response.read(limit)
            except HTTPError as err:
                body = self._error_body(err, limit)
            except (URLError, OSError, HTTPException):
                return None
        if not body or len(body) > self.max_packet:
            return None
        return body

    @staticmethod
    def _error_body(err: HTTPError, limit: int) -> bytes:
        try:
            return err.read(limit)
        except (OSError, HTTPException):
            return b""
        finally:
            err.close()

    def send(self, data: bytes) -> None:
        """POST one packet; raises ConnectionError when the request cannot be made."""
        if self.send_url is None:
            raise RuntimeError("send endpoint not configured")
        request = Request(
            self.send_url, data=bytes(data), headers={"Content-Type": OCTET_STREAM}, method="POST"
        )
        with self._lock:
            try:
                with self._opener.open(request, timeout=self.send_timeout) as response:
                    response.read()
            except HTTPError as err:
                err.close()
            except (URLError, OSError, HTTPException) as exc:
                raise ConnectionError(f"POST {self.send_url} failed: {exc}") from exc

    def heartbeat(self) -> bool:
        """Send an empty packet if the interval has passed; return whether one was sent."""
        now = self._clock()
        if now - self._last_heartbeat < self.heartbeat_interval:
            return False
        self.send(b"")
        self._last_heartbeat = now
        return True

    def close(self) -> None:
        logger.info("[H-CLT] cleanup")
        self.send_url = None
        self.poll_url = None

    def __enter__(self) -> "HttpTunnelClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
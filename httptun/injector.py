"""Moves packets polled over HTTP into a TUN device, and installs routes."""

from __future__ import annotations

import logging
import subprocess
import threading

from httptun.http_client import HttpTunnelClient
from httptun.tun import TunDevice

logger = logging.getLogger(__name__)

IDLE_DELAY = 0.01


class Injector:
    """Background thread that polls packets and writes them to a TUN device."""

    def __init__(self, client: HttpTunnelClient, tun: TunDevice, idle_delay: float = IDLE_DELAY) -> None:
        self.client = client
        self.tun = tun
        self.idle_delay = idle_delay
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def _loop(self) -> None:
        logger.info("[INJ] injector_loop running")
        while not self._stop.is_set():
            packet = self.client.poll()
            if not packet:
                self._stop.wait(self.idle_delay)
                continue
            logger.info("[INJ] got %d bytes from HTTP", len(packet))
            try:
                written = self.tun.write(packet)
            except OSError as exc:
                logger.error("[INJ] write to tun0 failed: %s", exc)
            else:
                logger.info("[INJ] wrote %d bytes to tun0", written)

    def start(self) -> None:
        """Spawn the polling thread."""
        if self._thread is not None:
            raise RuntimeError("injector already running")
        logger.info("[INJ] start injector on %r", self.tun)
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="injector", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the polling thread, wait for it and close the HTTP client."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self.client.close()

    def __enter__(self) -> "Injector":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def add_route(subnet_cidr: str, tun_name: str) -> bool:
    """Route ``subnet_cidr`` through ``tun_name``; return whether the command succeeded."""
    command = ["ip", "route", "replace", subnet_cidr, "dev", tun_name]
    try:
        result = subprocess.run(command, check=False)
    except OSError as exc:
        logger.error("%s: %s", " ".join(command), exc)
        return False
    if result.returncode != 0:
        logger.error("%s exited with status %d", " ".join(command), result.returncode)
        return False
    return True
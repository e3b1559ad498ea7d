"""Tunnel client: TUN packets go to the server, packets from the server go to TUN."""

from __future__ import annotations

import argparse
import logging
import sys
import threading

from httptun.http_client import HttpTunnelClient
from httptun.http_server import TunnelHTTPServer
from httptun.tun import TunDevice, open_tun

logger = logging.getLogger(__name__)

BUF_MAX = 65536
POLL_DELAY = 0.01
TUN_NAME = "tun0"


def build_urls(server_ip: str, server_port: str) -> tuple[str, str]:
    """Return (server URL to send to, local URL to poll from)."""
    return f"http://{server_ip}:{server_port}", f"http://127.0.0.1:{server_port}"


def inject_from_server(client: HttpTunnelClient, tun: TunDevice, stop_event: threading.Event) -> None:
    """Poll packets and write them to ``tun`` until ``stop_event`` is set."""
    while not stop_event.is_set():
        packet = client.poll()
        if packet:
            logger.info("[C] got %d bytes from poll, writing to tun", len(packet))
            try:
                tun.write(packet)
            except OSError:
                pass
        stop_event.wait(POLL_DELAY)


def _pump_tun_to_server(client: HttpTunnelClient, tun: TunDevice) -> None:
    while True:
        try:
            data = tun.read(BUF_MAX)
        except OSError:
            data = b""
        if data:
            logger.info("[C] read %d bytes from tun, sending", len(data))
            try:
                client.send(data)
            except ConnectionError as exc:
                logger.warning("%s", exc)
        try:
            client.heartbeat()
        except ConnectionError as exc:
            logger.warning("heartbeat: %s", exc)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="httptun-client", description="HTTP tunnel client")
    parser.add_argument("server_ip")
    parser.add_argument("server_port")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)

    server_url, client_url = build_urls(args.server_ip, args.server_port)
    logger.info("[C] main begins: server_url=%s, client_url=%s", server_url, client_url)

    try:
        tun = open_tun(TUN_NAME)
    except OSError as exc:
        print(f"tun_alloc: {exc}", file=sys.stderr)
        return 1
    logger.info("[C] tun_alloc -> %s fd=%d", tun.name, tun.fileno())

    with tun:
        try:
            http_server = TunnelHTTPServer(args.server_port)
            http_server.start()
        except (OSError, ValueError):
            print(f"Failed to start client HTTP server on port {args.server_port}", file=sys.stderr)
            return 1
        logger.info("[C] HTTP server up on %s", args.server_port)

        try:
            with HttpTunnelClient() as client:
                try:
                    client.configure_send(server_url)
                except ValueError:
                    print(f"http_client_init_send({server_url}) failed", file=sys.stderr)
                    return 1
                logger.info("[C] send-handle ready")
                try:
                    client.configure_poll(client_url)
                except ValueError:
                    print(f"http_client_init_poll({client_url}) failed", file=sys.stderr)
                    return 1
                logger.info("[C] poll-handle ready")

                stop_event = threading.Event()
                poller = threading.Thread(
                    target=inject_from_server,
                    args=(client, tun, stop_event),
                    name="inject-from-server",
                    daemon=True,
                )
                poller.start()
                logger.info("[C] injector_from_server thread spawned")
                try:
                    _pump_tun_to_server(client, tun)
                except KeyboardInterrupt:
                    pass
                finally:
                    stop_event.set()
                    poller.join(timeout=1.0)
        finally:
            http_server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
"""Tunnel server: TUN packets go to the client, packets from the client go to TUN."""

from __future__ import annotations

import argparse
import logging
import sys
import threading

from httptun.http_client import HttpTunnelClient
from httptun.http_server import TunnelHTTPServer
from httptun.injector import Injector, add_route
from httptun.tun import TunDevice, open_tun

logger = logging.getLogger(__name__)

BUF_MAX = 65536
ERROR_DELAY = 0.01
TUN_NAME = "tun0"
TUNNEL_SUBNET = "10.0.100.0/24"


def build_urls(port: str, client_ip: str, client_port: str) -> tuple[str, str]:
    """Return (client URL to send to, local URL to poll from)."""
    return f"http://{client_ip}:{client_port}", f"http://127.0.0.1:{port}"


def forward_to_client(client: HttpTunnelClient, tun: TunDevice, stop_event: threading.Event) -> None:
    """Read packets from ``tun`` and post them to the client until ``stop_event`` is set."""
    while not stop_event.is_set():
        try:
            data = tun.read(BUF_MAX)
        except ValueError:
            return
        except OSError:
            stop_event.wait(ERROR_DELAY)
            continue
        if not data:
            continue
        try:
            client.send(data)
        except ConnectionError as exc:
            logger.warning("%s", exc)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="httptun-server", description="HTTP tunnel server")
    parser.add_argument("port")
    parser.add_argument("client_ip")
    parser.add_argument("client_port")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)

    logger.info("[S] main begins: server_port=%s, client=%s:%s", args.port, args.client_ip, args.client_port)

    try:
        tun = open_tun(TUN_NAME)
    except OSError as exc:
        print(f"tun_alloc: {exc}", file=sys.stderr)
        return 1
    logger.info("[S] tun0 fd=%d", tun.fileno())

    with tun:
        add_route(TUNNEL_SUBNET, tun.name)

        try:
            http_server = TunnelHTTPServer(args.port)
            http_server.start()
        except (OSError, ValueError):
            print(f"Failed to start HTTP server on port {args.port}", file=sys.stderr)
            return 1
        logger.info("[S] HTTP server up on %s", args.port)

        client_url, server_url = build_urls(args.port, args.client_ip, args.client_port)
        try:
            with HttpTunnelClient() as client:
                try:
                    client.configure_send(client_url)
                except ValueError:
                    print(f"http_client_init_send({client_url}) failed", file=sys.stderr)
                    return 1
                logger.info("[S] send-handle ready")
                try:
                    client.configure_poll(server_url)
                except ValueError:
                    print(f"http_client_init_poll({server_url}) failed", file=sys.stderr)
                    return 1
                logger.info("[S] poll-handle ready")

                stop_event = threading.Event()
                sender = threading.Thread(
                    target=forward_to_client,
                    args=(client, tun, stop_event),
                    name="forward-to-client",
                    daemon=True,
                )
                sender.start()
                logger.info("[S] reader_to_client thread spawned")

                injector = Injector(client, tun)
                injector.start()
                logger.info("[S] injector thread spawned")

                try:
                    sys.stdin.readline()
                except KeyboardInterrupt:
                    pass
                finally:
                    stop_event.set()
                    injector.stop()
        finally:
            http_server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
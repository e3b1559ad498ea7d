import socket
import threading
import time

import pytest

from httptun.http_client import HttpTunnelClient
from httptun.http_server import TunnelHTTPServer
from httptun.server import build_urls, forward_to_client, main


class ScriptedTun:
    """Returns scripted reads; an exception instance is raised instead of returned."""

    def __init__(self, reads, stop_event):
        self._reads = list(reads)
        self._stop_event = stop_event
        self.read_sizes = []

    def read(self, size):
        self.read_sizes.append(size)
        item = self._reads.pop(0)
        if not self._reads:
            self._stop_event.set()
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingClient:
    def __init__(self, fail_on=()):
        self.sent = []
        self.fail_on = set(fail_on)

    def send(self, data):
        if data in self.fail_on:
            raise ConnectionError("unreachable")
        self.sent.append(bytes(data))


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_build_urls():
    client_url, server_url = build_urls("8000", "192.0.2.9", "9000")
    assert client_url == "http://192.0.2.9:9000"
    assert server_url == "http://127.0.0.1:8000"


def test_forward_to_client_sends_nonempty_reads():
    stop = threading.Event()
    tun = ScriptedTun([b"\x45one", b"", b"\x45two"], stop)
    client = RecordingClient()
    forward_to_client(client, tun, stop)
    assert client.sent == [b"\x45one", b"\x45two"]
    assert tun.read_sizes == [65536] * 3


def test_forward_to_client_ignores_send_failures():
    stop = threading.Event()
    tun = ScriptedTun([b"bad", b"good"], stop)
    client = RecordingClient(fail_on={b"bad"})
    forward_to_client(client, tun, stop)
    assert client.sent == [b"good"]


def test_forward_to_client_retries_after_read_error():
    stop = threading.Event()
    tun = ScriptedTun([OSError("read failed"), b"after"], stop)
    client = RecordingClient()
    forward_to_client(client, tun, stop)
    assert client.sent == [b"after"]


def test_forward_to_client_ends_on_closed_device():
    stop = threading.Event()
    tun = ScriptedTun([ValueError("closed"), b"never"], stop)
    client = RecordingClient()
    forward_to_client(client, tun, stop)
    assert client.sent == []
    assert not stop.is_set()


def test_forward_to_client_over_http():
    port = _free_port()
    stop = threading.Event()
    tun = ScriptedTun([b"\x45hello"], stop)
    with TunnelHTTPServer(port, host="127.0.0.1") as peer:
        client = HttpTunnelClient()
        client.configure_send(build_urls("1", "127.0.0.1", str(port))[0])
        forward_to_client(client, tun, stop)
        deadline = time.monotonic() + 5
        while len(peer.packets) == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert peer.packets.get() == b"\x45hello"


@pytest.mark.parametrize("argv", [[], ["8000"], ["8000", "192.0.2.9"], ["a", "b", "c", "d"]])
def test_main_rejects_wrong_argument_count(argv):
    with pytest.raises(SystemExit) as info:
        main(argv)
    assert info.value.code == 2
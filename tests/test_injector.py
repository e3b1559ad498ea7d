import socket
import threading
import time
from types import SimpleNamespace
from unittest import mock

import pytest

from httptun.http_client import HttpTunnelClient
from httptun.http_server import TunnelHTTPServer
from httptun.injector import Injector, add_route


class FakeClient:
    def __init__(self, packets):
        self._packets = list(packets)
        self._lock = threading.Lock()
        self.closed = False

    def poll(self):
        with self._lock:
            return self._packets.pop(0) if self._packets else None

    def close(self):
        self.closed = True


class FakeTun:
    def __init__(self, expected, fail_first=False):
        self.written = []
        self.expected = expected
        self.fail_first = fail_first
        self.done = threading.Event()

    def write(self, data):
        if self.fail_first:
            self.fail_first = False
            raise OSError("boom")
        self.written.append(bytes(data))
        if len(self.written) >= self.expected:
            self.done.set()
        return len(data)


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_injector_writes_polled_packets_in_order():
    packets = [b"\x45first", b"\x45second", b"\x45third"]
    client = FakeClient(packets)
    tun = FakeTun(expected=3)
    injector = Injector(client, tun)
    injector.start()
    assert tun.done.wait(5)
    injector.stop()
    assert tun.written == packets
    assert client.closed is True


def test_injector_continues_after_write_failure():
    client = FakeClient([b"lost", b"kept"])
    tun = FakeTun(expected=1, fail_first=True)
    with Injector(client, tun):
        assert tun.done.wait(5)
    assert tun.written == [b"kept"]


def test_injector_stop_marks_not_running():
    client = FakeClient([])
    injector = Injector(client, FakeTun(expected=1))
    injector.start()
    assert injector.running is True
    injector.stop()
    assert injector.running is False
    assert client.closed is True


def test_injector_double_start_rejected():
    injector = Injector(FakeClient([]), FakeTun(expected=1))
    injector.start()
    try:
        with pytest.raises(RuntimeError):
            injector.start()
    finally:
        injector.stop()


def test_injector_polls_real_http_server():
    port = _free_port()
    tun = FakeTun(expected=2)
    with TunnelHTTPServer(port, host="127.0.0.1") as server:
        client = HttpTunnelClient()
        client.configure_poll(f"http://127.0.0.1:{port}")
        server.packets.put(b"\x45abc")
        server.packets.put(b"\x45def")
        with Injector(client, tun):
            assert tun.done.wait(5)
        assert len(server.packets) == 0
    assert tun.written == [b"\x45abc", b"\x45def"]


def test_add_route_runs_ip_route_replace():
    with mock.patch("httptun.injector.subprocess.run", return_value=SimpleNamespace(returncode=0)) as run:
        assert add_route("10.0.100.0/24", "tun0") is True
    run.assert_called_once_with(["ip", "route", "replace", "10.0.100.0/24", "dev", "tun0"], check=False)


def test_add_route_reports_command_failure():
    with mock.patch("httptun.injector.subprocess.run", return_value=SimpleNamespace(returncode=2)):
        assert add_route("10.0.100.0/24", "tun0") is False


def test_add_route_missing_ip_tool():
    with mock.patch("httptun.injector.subprocess.run", side_effect=FileNotFoundError("ip")):
        assert add_route("10.0.100.0/24", "tun0") is False
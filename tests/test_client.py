"""Tests for NISClient against a loopback fake apcupsd NIS server."""

import socket
import socketserver
import struct
import threading

import pytest

from apcups_battery.client import NISClient

_RECORDS = [
    "APC      : 001,036,0877\n",
    "STATUS   : ONLINE \n",
    "BCHARGE  : 100.0 Percent\n",
    "TIMELEFT : 36.4 Minutes\n",
]


def record(payload: bytes) -> bytes:
    return struct.pack(">H", len(payload)) + payload


class _Handler(socketserver.BaseRequestHandler):
    def handle(self):
        header = self.request.recv(2)
        if len(header) < 2:
            return
        size = struct.unpack(">H", header)[0]
        cmd = self.request.recv(size)
        self.server.requests.append(cmd)
        self.request.sendall(self.server.reply)


class FakeNIS(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, reply: bytes):
        super().__init__(("127.0.0.1", 0), _Handler)
        self.reply = reply
        self.requests = []


@pytest.fixture
def make_server():
    servers = []

    def _make(reply):
        srv = FakeNIS(reply)
        threading.Thread(target=srv.serve_forever, daemon=True).start()
        servers.append(srv)
        return srv

    yield _make
    for srv in servers:
        srv.shutdown()
        srv.server_close()


def full_reply():
    return b"".join(record(r.encode("ascii")) for r in _RECORDS) + record(b"")


class TestNISClient:
    def test_status_roundtrip(self, make_server):
        srv = make_server(full_reply())
        client = NISClient(timeout=2.0)
        client.connect("127.0.0.1", srv.server_address[1])
        assert client.connected
        result = client.get_status()
        client.disconnect()
        assert not client.connected
        assert srv.requests == [b"status"]
        assert result["BCHARGE"] == "100.0 Percent"
        assert result["STATUS"] == "ONLINE"

    def test_reusable_after_disconnect(self, make_server):
        srv = make_server(full_reply())
        client = NISClient(timeout=2.0)
        for _ in range(2):
            client.connect("127.0.0.1", srv.server_address[1])
            assert client.get_status()["TIMELEFT"] == "36.4 Minutes"
            client.disconnect()

    def test_non_ascii_field_keeps_snapshot(self, make_server):
        reply = (
            record("UPSNAME  : Büro\n".encode("utf-8"))
            + record(b"MODEL    : Smart-UPS \xff\n")
            + record(b"BCHARGE  : 80.0 Percent\n")
            + record(b"")
        )
        srv = make_server(reply)
        client = NISClient(timeout=2.0)
        client.connect("127.0.0.1", srv.server_address[1])
        result = client.get_status()
        client.disconnect()
        assert result["BCHARGE"] == "80.0 Percent"
        assert result["UPSNAME"] == "Büro"
        assert result["MODEL"].startswith("Smart-UPS")

    def test_truncated_reply(self, make_server):
        # no terminating zero-length record; server closes the connection
        srv = make_server(record(_RECORDS[2].encode("ascii")))
        client = NISClient(timeout=2.0)
        client.connect("127.0.0.1", srv.server_address[1])
        with pytest.raises(ValueError):
            client.get_status()
        client.disconnect()

    def test_empty_reply(self, make_server):
        srv = make_server(record(b""))
        client = NISClient(timeout=2.0)
        client.connect("127.0.0.1", srv.server_address[1])
        with pytest.raises(ValueError):
            client.get_status()
        client.disconnect()

    def test_connect_refused(self):
        # grab a free port and close it again so nothing listens there
        with socket.socket() as s:
            s.bind(("127.0.0.1", 0))
            port = s.getsockname()[1]
        with pytest.raises(OSError):
            NISClient(timeout=1.0).connect("127.0.0.1", port)

    def test_state_errors(self, make_server):
        client = NISClient()
        with pytest.raises(RuntimeError):
            client.get_status()
        with pytest.raises(RuntimeError):
            client.disconnect()
        srv = make_server(full_reply())
        client.connect("127.0.0.1", srv.server_address[1])
        with pytest.raises(RuntimeError):
            client.connect("127.0.0.1", srv.server_address[1])
        client.disconnect()

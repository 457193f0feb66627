import socket
import threading

import pytest

from zinx.config import GlobalObj
from zinx.connection import ConnectionClosedError
from zinx.datapack import DataPack
from zinx.demo import (
    HelloZinxRouter,
    PingRouter,
    build_server,
    client_main,
    client_roundtrip,
    do_connection_begin,
    do_connection_lost,
)
from zinx.message import Message
from zinx.router import Request


class FakeConn:
    def __init__(self, fail=False):
        self.props = {}
        self.sent = []
        self.buffered = []
        self.asked = []
        self.fail = fail

    def set_property(self, key, value):
        self.props[key] = value

    def get_property(self, key):
        self.asked.append(key)
        return self.props[key]

    def send_msg(self, msg_id, data):
        if self.fail:
            raise ConnectionClosedError("closed")
        self.sent.append((msg_id, data))

    def send_buff_msg(self, msg_id, data):
        if self.fail:
            raise ConnectionClosedError("closed")
        self.buffered.append((msg_id, data))


def _recv_exact(sock, n):
    buf = b""
    while len(buf) < n:
        chunk = sock.recv(n - len(buf))
        assert chunk
        buf += chunk
    return buf


def _read_frame(sock):
    dp = DataPack()
    msg = dp.unpack(_recv_exact(sock, dp.head_len))
    msg.data = _recv_exact(sock, msg.data_len) if msg.data_len else b""
    return msg


@pytest.fixture
def server():
    config = GlobalObj(host="127.0.0.1", tcp_port=0, worker_pool_size=2)
    srv = build_server(config)
    srv.start()
    yield srv
    srv.stop()


def test_ping_router_replies():
    conn = FakeConn()
    PingRouter().handle(Request(connection=conn, msg=Message.from_payload(0, b"x")))
    assert conn.buffered == [(0, b"ping...ping...ping[FromServer]")]


def test_hello_router_replies():
    conn = FakeConn()
    HelloZinxRouter().handle(Request(connection=conn, msg=Message.from_payload(1, b"x")))
    assert conn.buffered == [(1, b"Hello Zinx Router V0.10")]


def test_router_send_failure_is_swallowed():
    conn = FakeConn(fail=True)
    PingRouter().handle(Request(connection=conn, msg=Message.from_payload(0, b"x")))
    assert conn.buffered == []


def test_connection_begin_sets_properties_and_greets():
    conn = FakeConn()
    do_connection_begin(conn)
    assert set(conn.props) == {"Name", "Home"}
    assert conn.sent == [(2, b"DoConnection BEGIN...")]


def test_connection_begin_survives_closed_connection():
    conn = FakeConn(fail=True)
    do_connection_begin(conn)
    assert "Name" in conn.props
    assert conn.sent == []


def test_connection_lost_reads_properties():
    conn = FakeConn()
    do_connection_lost(conn)
    assert conn.asked == ["Name", "Home"]


def test_client_roundtrip_over_socketpair():
    client, peer = socket.socketpair()
    with client, peer:
        dp = DataPack()
        peer.sendall(dp.pack(Message.from_payload(9, b"pong")))
        reply = client_roundtrip(client, 5, b"abc")
        assert reply == Message(msg_id=9, data=b"pong", data_len=4)
        sent = _recv_exact(peer, 11)
        assert sent == b"\x03\x00\x00\x00\x05\x00\x00\x00abc"
        assert dp.unpack(sent).msg_id == 5


def test_client_roundtrip_peer_closed():
    client, peer = socket.socketpair()
    peer.close()
    with client:
        with pytest.raises(ConnectionError):
            client_roundtrip(client, 0, b"abc")


def test_server_routes_messages(server):
    host, port = server.address
    with socket.create_connection((host, port), timeout=5) as sock:
        greeting = _read_frame(sock)
        assert (greeting.msg_id, greeting.data) == (2, b"DoConnection BEGIN...")
        ping = client_roundtrip(sock, 0, b"hello")
        assert (ping.msg_id, ping.data) == (0, b"ping...ping...ping[FromServer]")
        hello = client_roundtrip(sock, 1, b"hello")
        assert (hello.msg_id, hello.data) == (1, b"Hello Zinx Router V0.10")


def test_client_main_against_server(server, capsys):
    host, port = server.address
    rc = client_main(["--host", host, "--port", str(port), "--count", "2", "--interval", "0"])
    out = capsys.readouterr().out
    assert rc == 0
    assert "ping...ping...ping[FromServer]" in out
    assert "DoConnection BEGIN..." in out


def test_client_main_connection_refused(capsys):
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    assert client_main(["--host", "127.0.0.1", "--port", str(port), "--count", "1"]) == 1
    assert "client start err" in capsys.readouterr().out


def test_build_server_rejects_duplicate_router():
    srv = build_server(GlobalObj(host="127.0.0.1", tcp_port=0))
    assert set(srv.msg_handler.apis) == {0, 1}
    with pytest.raises(ValueError):
        srv.add_router(0, PingRouter())
    assert threading.active_count() >= 1
"""Demo server with ping and hello routers, and a matching demo client."""

from __future__ import annotations

import argparse
import socket
import time
from typing import Any, Optional, Sequence

from zinx import zlog
from zinx.config import GlobalObj, init_global_object
from zinx.datapack import DataPack
from zinx.message import Message
from zinx.router import BaseRouter, Request
from zinx.server import Server

PING_REPLY = b"ping...ping...ping[FromServer]"
HELLO_REPLY = b"Hello Zinx Router V0.10"
BEGIN_MSG = b"DoConnection BEGIN..."
CLIENT_PING = b"Zinx client Demo Test MsgID=0, [Ping]"


class PingRouter(BaseRouter):
    """Answers message 0 with a ping reply through the send buffer."""

    def handle(self, request: Request) -> None:
        zlog.debug("Call PingRouter Handle")
        zlog.debug("recv from client : msgId=", request.msg_id, ", data=", request.data)
        try:
            request.connection.send_buff_msg(0, PING_REPLY)
        except (OSError, ValueError) as exc:
            zlog.error(exc)


class HelloZinxRouter(BaseRouter):
    """Answers message 1 with a greeting through the send buffer."""

    def handle(self, request: Request) -> None:
        zlog.debug("Call HelloZinxRouter Handle")
        zlog.debug("recv from client : msgId=", request.msg_id, ", data=", request.data)
        try:
            request.connection.send_buff_msg(1, HELLO_REPLY)
        except (OSError, ValueError) as exc:
            zlog.error(exc)


def do_connection_begin(conn: Any) -> None:
    """Set two properties on the new connection and greet the client with message 2."""
    zlog.debug("DoConnecionBegin is Called ... ")
    zlog.debug("Set conn Name, Home done!")
    conn.set_property("Name", "Zinx")
    conn.set_property("Home", "https://example.com/home")
    try:
        conn.send_msg(2, BEGIN_MSG)
    except (OSError, ValueError) as exc:
        zlog.error(exc)


def do_connection_lost(conn: Any) -> None:
    """Log the connection's properties before it goes away."""
    for key in ("Name", "Home"):
        try:
            value = conn.get_property(key)
        except KeyError:
            continue
        zlog.error(f"Conn Property {key} = ", value)
    zlog.debug("DoConneciotnLost is Called ... ")


def build_server(config: Optional[GlobalObj] = None) -> Server:
    """A server with the demo hooks and routers installed."""
    server = Server(config)
    server.on_conn_start = do_connection_begin
    server.on_conn_stop = do_connection_lost
    server.add_router(0, PingRouter())
    server.add_router(1, HelloZinxRouter())
    return server


def _read_exact(sock: socket.socket, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = sock.recv(size - len(buf))
        if not chunk:
            raise ConnectionError(f"connection closed after {len(buf)} of {size} bytes")
        buf += chunk
    return bytes(buf)


def _read_message(sock: socket.socket, packet: DataPack) -> Message:
    msg = packet.unpack(_read_exact(sock, packet.head_len))
    if msg.data_len > 0:
        msg.data = _read_exact(sock, msg.data_len)
    return msg


def client_roundtrip(sock: socket.socket, msg_id: int, data: bytes) -> Message:
    """Send one framed message on ``sock`` and return the next message received."""
    packet = DataPack()
    sock.sendall(packet.pack(Message.from_payload(msg_id, data)))
    return _read_message(sock, packet)


def server_main(argv: Optional[Sequence[str]] = None) -> int:
    """Load the configuration from ``argv`` and serve the demo until interrupted."""
    config = init_global_object(argv)
    build_server(config).serve()
    return 0


def client_main(argv: Optional[Sequence[str]] = None) -> int:
    """Send ping messages to a demo server and print every reply."""
    parser = argparse.ArgumentParser(description="demo client")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8999)
    parser.add_argument("--count", type=int, default=None, help="stop after this many replies")
    parser.add_argument("--interval", type=float, default=1.0, help="seconds between pings")
    opts = parser.parse_args(argv)

    try:
        sock = socket.create_connection((opts.host, opts.port))
    except OSError as exc:
        print("client start err, exit!", exc)
        return 1

    with sock:
        sent = 0
        while opts.count is None or sent < opts.count:
            try:
                reply = client_roundtrip(sock, 0, CLIENT_PING)
            except ValueError as exc:
                print("server unpack err:", exc)
                return 1
            except OSError as exc:
                print("read error", exc)
                break
            sent += 1
            if reply.data_len > 0:
                print(
                    "==> Test Router:[Ping] Recv Msg: ID=", reply.msg_id,
                    ", len=", reply.data_len,
                    ", data=", reply.data.decode("utf-8", "replace"),
                )
            if opts.interval > 0:
                time.sleep(opts.interval)
    return 0
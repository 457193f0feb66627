"""TCP server that accepts connections and routes their messages."""

from __future__ import annotations

import socket
import threading
from typing import Any, Callable, Optional

from zinx import config as zinx_config
from zinx import zlog
from zinx.config import GlobalObj
from zinx.connection import Connection
from zinx.connmanager import ConnManager
from zinx.datapack import DataPack, Packet
from zinx.msghandler import MsgHandle
from zinx.router import BaseRouter

_ACCEPT_POLL = 0.1
_UINT32_MASK = 0xFFFFFFFF

ConnHook = Callable[[Connection], None]


class Server:
    """A server bound to ``config.host:config.tcp_port``.

    ``packet`` chooses the framing; the default is ``DataPack``. The
    ``on_conn_start`` and ``on_conn_stop`` attributes hold optional hooks
    called with each connection when it starts and when it ends.
    """

    def __init__(self, config: Optional[GlobalObj] = None, packet: Optional[Packet] = None) -> None:
        if config is None:
            config = zinx_config.global_object or GlobalObj()
        self.config = config
        self.name = config.name
        self.ip_version = "tcp4"
        self.ip = config.host
        self.port = config.tcp_port
        self.open_kcp = config.open_kcp
        self.msg_handler = MsgHandle(config.worker_pool_size, config.max_worker_task_len)
        self.conn_mgr = ConnManager()
        self.on_conn_start: Optional[ConnHook] = None
        self.on_conn_stop: Optional[ConnHook] = None
        self.packet: Packet = packet if packet is not None else DataPack(config.max_packet_size)
        self._listener: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()
        print(
            f"[Zinx] Version: {config.version}, MaxConn: {config.max_conn}, "
            f"MaxPacketSize: {config.max_packet_size}"
        )

    @property
    def address(self) -> Any:
        """The address the server is listening on."""
        listener = self._listener
        if listener is None:
            raise RuntimeError("server is not listening")
        return listener.getsockname()

    def start(self) -> None:
        """Start the worker pool, bind the listener and accept connections in the background."""
        print(
            f"[START] Server name: {self.name},listenner at IP: {self.ip}, "
            f"Port {self.port} is starting"
        )
        if self.open_kcp:
            raise ValueError("KCP transport is unavailable; set open_kcp to false")

        self._stopped.clear()
        self.msg_handler.start_worker_pool()
        listener = socket.create_server((self.ip, self.port), family=socket.AF_INET)
        listener.settimeout(_ACCEPT_POLL)
        self._listener = listener
        zlog.info("start Zinx server  ", self.name, " succ, now listenning...")

        self._accept_thread = threading.Thread(
            target=self._accept_loop, args=(listener,), name="zinx-accept", daemon=True
        )
        self._accept_thread.start()

    def _accept_loop(self, listener: socket.socket) -> None:
        cid = 0
        while not self._stopped.is_set():
            try:
                sock, addr = listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if self._stopped.is_set():
                    break
                zlog.error("Accept err ", exc)
                continue
            sock.settimeout(None)
            zlog.info("Get conn remote addr = ", addr)

            if len(self.conn_mgr) >= self.config.max_conn:
                sock.close()
                continue

            conn = Connection(self, sock, cid, self.msg_handler)
            cid = (cid + 1) & _UINT32_MASK
            threading.Thread(
                target=conn.start, name=f"zinx-conn-{conn.conn_id}", daemon=True
            ).start()

    def stop(self) -> None:
        """Stop accepting, stop every connection and shut the worker pool down."""
        print("[STOP] Zinx server , name ", self.name)
        self._stopped.set()
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.close()
        thread, self._accept_thread = self._accept_thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self.conn_mgr.clear_conn()
        self.msg_handler.stop_worker_pool()

    def serve(self) -> None:
        """Start the server and block until it is stopped."""
        self.start()
        try:
            self._stopped.wait()
        except KeyboardInterrupt:
            self.stop()

    def add_router(self, msg_id: int, router: BaseRouter) -> None:
        """Register ``router`` for messages with ``msg_id``."""
        self.msg_handler.add_router(msg_id, router)

    def call_on_conn_start(self, conn: Connection) -> None:
        if self.on_conn_start is not None:
            zlog.info("---> CallOnConnStart....")
            self.on_conn_start(conn)

    def call_on_conn_stop(self, conn: Connection) -> None:
        if self.on_conn_stop is not None:
            zlog.info("---> CallOnConnStop....")
            self.on_conn_stop(conn)
"""A single client connection: a reader thread, a buffered writer thread and lifecycle hooks."""

from __future__ import annotations

import queue
import socket
import threading
from typing import Any, Optional

from zinx import zlog
from zinx.message import Message
from zinx.router import Request

_SEND_BUFF_TIMEOUT = 0.005
_WRITER_POLL = 0.05


class ConnectionClosedError(ConnectionError):
    """Raised when sending on a connection that has already been closed."""


class SendTimeoutError(TimeoutError):
    """Raised when the send buffer stays full for longer than the send timeout."""


class Connection:
    """One accepted socket bound to a server and a message handler.

    ``start`` runs the connection and blocks until it is stopped, then
    releases the socket and removes the connection from the server's
    connection manager. ``stop`` only asks the connection to end.
    """

    def __init__(self, server: Any, sock: Any, conn_id: int, msg_handler: Any) -> None:
        self.server = server
        self.sock = sock
        self.conn_id = conn_id
        self.msg_handler = msg_handler
        self._done = threading.Event()
        self._buff: queue.Queue = queue.Queue(maxsize=server.config.max_msg_chan_len)
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._properties: dict[str, Any] = {}
        self._properties_lock = threading.Lock()
        self._closed = False
        try:
            self._remote_addr: Optional[Any] = sock.getpeername()
        except (OSError, AttributeError):
            self._remote_addr = None
        server.conn_mgr.add(self)

    @property
    def remote_addr(self) -> Optional[Any]:
        """Address of the peer, as reported when the connection was created."""
        return self._remote_addr

    @property
    def done(self) -> threading.Event:
        """Event that is set once the connection has been asked to stop."""
        return self._done

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def _read_exact(self, size: int) -> bytes:
        buf = bytearray()
        while len(buf) < size:
            chunk = self.sock.recv(size - len(buf))
            if not chunk:
                raise EOFError(f"connection closed after {len(buf)} of {size} bytes")
            buf += chunk
        return bytes(buf)

    def _dispatch(self, request: Request) -> None:
        if self.msg_handler.worker_pool_size > 0:
            self.msg_handler.send_msg_to_task_queue(request)
        else:
            threading.Thread(
                target=self.msg_handler.do_msg_handler,
                args=(request,),
                name=f"zinx-handler-{self.conn_id}",
                daemon=True,
            ).start()

    def _reader(self) -> None:
        zlog.info("[Reader Goroutine is running]")
        packet = self.server.packet
        try:
            while not self._done.is_set():
                try:
                    head = self._read_exact(packet.head_len)
                except (OSError, EOFError) as exc:
                    zlog.info("read msg head error ", exc)
                    return
                try:
                    msg = packet.unpack(head)
                except ValueError as exc:
                    zlog.error("unpack error ", exc)
                    return
                data = b""
                if msg.data_len > 0:
                    try:
                        data = self._read_exact(msg.data_len)
                    except (OSError, EOFError) as exc:
                        zlog.error("read msg data error ", exc)
                        return
                msg.data = data
                try:
                    self._dispatch(Request(connection=self, msg=msg))
                except RuntimeError as exc:
                    zlog.error("dispatch error ", exc)
                    return
        finally:
            zlog.info(self._remote_addr, "[conn Reader exit!]")
            self.stop()

    def _writer(self) -> None:
        zlog.info("[Writer Goroutine is running]")
        try:
            while not self._done.is_set():
                try:
                    data = self._buff.get(timeout=_WRITER_POLL)
                except queue.Empty:
                    continue
                try:
                    with self._write_lock:
                        self.sock.sendall(data)
                except OSError as exc:
                    zlog.error("Send Buff Data error:, ", exc, " Conn Writer exit")
                    return
        finally:
            zlog.info(self._remote_addr, "[conn Writer exit!]")

    def start(self) -> None:
        """Run the reader and writer threads and block until the connection stops."""
        for target, role in ((self._reader, "reader"), (self._writer, "writer")):
            threading.Thread(
                target=target, name=f"zinx-conn-{self.conn_id}-{role}", daemon=True
            ).start()
        try:
            self.server.call_on_conn_start(self)
        except Exception as exc:
            zlog.error("OnConnStart hook error: ", exc)
            self.stop()
        self._done.wait()
        self._finalize()

    def stop(self) -> None:
        """Ask the connection to end."""
        self._done.set()

    def _finalize(self) -> None:
        try:
            self.server.call_on_conn_stop(self)
        except Exception as exc:
            zlog.error("OnConnStop hook error: ", exc)

        with self._lock:
            if self._closed:
                return
            zlog.info("Conn Stop()...ConnID = ", self.conn_id)
            try:
                self.sock.shutdown(socket.SHUT_RDWR)
            except (OSError, AttributeError):
                pass
            try:
                self.sock.close()
            except OSError:
                pass
            self.server.conn_mgr.remove(self)
            self._closed = True

    def _pack(self, msg_id: int, data: bytes) -> bytes:
        try:
            return self.server.packet.pack(Message.from_payload(msg_id, data))
        except ValueError as exc:
            zlog.error("Pack error msg ID = ", msg_id)
            raise ValueError("Pack error msg") from exc

    def send_msg(self, msg_id: int, data: bytes) -> None:
        """Frame ``data`` and write it to the socket at once."""
        with self._lock:
            if self._closed:
                raise ConnectionClosedError("connection closed when send msg")
        frame = self._pack(msg_id, data)
        with self._write_lock:
            self.sock.sendall(frame)

    def send_buff_msg(self, msg_id: int, data: bytes) -> None:
        """Frame ``data`` and hand it to the writer thread through the send buffer."""
        with self._lock:
            if self._closed:
                raise ConnectionClosedError("connection closed when send buff msg")
        frame = self._pack(msg_id, data)
        try:
            self._buff.put(frame, timeout=_SEND_BUFF_TIMEOUT)
        except queue.Full:
            raise SendTimeoutError("send buff msg timeout") from None

    def set_property(self, key: str, value: Any) -> None:
        with self._properties_lock:
            self._properties[key] = value

    def get_property(self, key: str) -> Any:
        """Return the property stored under ``key``; a missing key raises KeyError."""
        with self._properties_lock:
            try:
                return self._properties[key]
            except KeyError:
                raise KeyError("no property found") from None

    def remove_property(self, key: str) -> None:
        with self._properties_lock:
            self._properties.pop(key, None)
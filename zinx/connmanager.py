"""Registry of live connections keyed by connection ID."""

from __future__ import annotations

import threading
from typing import Any

from zinx import zlog


class ConnectionNotFoundError(LookupError):
    """Raised when no connection has the requested ID."""


class ConnManager:
    """Thread-safe map from connection ID to connection."""

    def __init__(self) -> None:
        self._connections: dict[int, Any] = {}
        self._lock = threading.RLock()

    def add(self, conn: Any) -> None:
        """Register ``conn`` under its ``conn_id``."""
        with self._lock:
            self._connections[conn.conn_id] = conn
        zlog.info("connection add to ConnManager successfully: conn num = ", len(self))

    def remove(self, conn: Any) -> None:
        """Forget ``conn``; nothing happens if it is not registered."""
        with self._lock:
            self._connections.pop(conn.conn_id, None)
        zlog.info(
            "connection Remove ConnID=", conn.conn_id, " successfully: conn num = ", len(self)
        )

    def get(self, conn_id: int) -> Any:
        """Return the connection with ``conn_id``."""
        with self._lock:
            try:
                return self._connections[conn_id]
            except KeyError:
                raise ConnectionNotFoundError("connection not found") from None

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, conn_id: object) -> bool:
        with self._lock:
            return conn_id in self._connections

    def clear_conn(self) -> None:
        """Stop and forget every connection."""
        with self._lock:
            for conn_id, conn in list(self._connections.items()):
                conn.stop()
                self._connections.pop(conn_id, None)
        zlog.info("Clear All Connections successfully: conn num = ", len(self))

    def clear_one_conn(self, conn_id: int) -> bool:
        """Stop and forget one connection; return whether it was registered."""
        with self._lock:
            conn = self._connections.get(conn_id)
            if conn is None:
                zlog.warn("Clear Connections ID:  ", conn_id, "err")
                return False
            conn.stop()
            self._connections.pop(conn_id, None)
        zlog.info("Clear Connections ID:  ", conn_id, "succeed")
        return True
"""Dispatch of requests to routers by message ID, optionally through a worker pool."""

from __future__ import annotations

import queue
import threading
from typing import Optional

from zinx import zlog
from zinx.router import BaseRouter, Request

_STOP = object()


class RouterExistsError(ValueError):
    """Raised when a router is registered twice for the same message ID."""


class MsgHandle:
    """Maps message IDs to routers and runs them, directly or on worker threads.

    Each worker owns one bounded queue; a request goes to the worker chosen
    by its connection ID modulo the pool size, so one connection's requests
    are handled in order by a single worker.
    """

    def __init__(self, worker_pool_size: int = 10, max_worker_task_len: int = 1024) -> None:
        self.apis: dict[int, BaseRouter] = {}
        self.worker_pool_size = worker_pool_size
        self.max_worker_task_len = max_worker_task_len
        self._task_queues: list[queue.Queue] = []
        self._workers: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        """Whether the worker pool has been started and not stopped."""
        with self._lock:
            return bool(self._workers)

    def do_msg_handler(self, request: Request) -> None:
        """Run the router registered for the request's message ID, if any."""
        router: Optional[BaseRouter] = self.apis.get(request.msg_id)
        if router is None:
            zlog.warn("api msgID = ", request.msg_id, " is not FOUND!")
            return
        router.pre_handle(request)
        router.handle(request)
        router.post_handle(request)

    def add_router(self, msg_id: int, router: BaseRouter) -> None:
        """Bind ``router`` to ``msg_id``; a second binding for the same ID is an error."""
        if msg_id in self.apis:
            raise RouterExistsError(f"repeated api , msgID = {msg_id}")
        self.apis[msg_id] = router
        zlog.info("Add api msgID = ", msg_id)

    def _work(self, worker_id: int, task_queue: queue.Queue) -> None:
        zlog.info("Worker ID = ", worker_id, " is started.")
        while True:
            request = task_queue.get()
            if request is _STOP:
                return
            try:
                self.do_msg_handler(request)
            except Exception as exc:  # keep the worker alive for later requests
                zlog.error("worker ", worker_id, " handler error: ", exc)

    def start_worker_pool(self) -> None:
        """Create one queue and one daemon thread per worker."""
        with self._lock:
            if self._workers:
                return
            for worker_id in range(self.worker_pool_size):
                task_queue: queue.Queue = queue.Queue(maxsize=self.max_worker_task_len)
                worker = threading.Thread(
                    target=self._work,
                    args=(worker_id, task_queue),
                    name=f"zinx-worker-{worker_id}",
                    daemon=True,
                )
                self._task_queues.append(task_queue)
                self._workers.append(worker)
                worker.start()

    def send_msg_to_task_queue(self, request: Request) -> None:
        """Queue ``request`` for the worker responsible for its connection."""
        with self._lock:
            if not self._task_queues:
                raise RuntimeError("worker pool is not running")
            worker_id = request.connection.conn_id % len(self._task_queues)
            task_queue = self._task_queues[worker_id]
        task_queue.put(request)

    def stop_worker_pool(self) -> None:
        """Let every worker finish its queued requests, then wait for it to exit."""
        with self._lock:
            queues, workers = self._task_queues, self._workers
            self._task_queues, self._workers = [], []
        for task_queue in queues:
            task_queue.put(_STOP)
        for worker in workers:
            worker.join()
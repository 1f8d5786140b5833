from __future__ import annotations

import itertools
import queue
import threading
from typing import Any, Dict, Optional

from waterlevel.exceptions.custom import QueueException
from waterlevel.logger import logger
from waterlevel.queues.base import Message, QueueClient
from waterlevel.utils import get_time


class MemoryQueueClient(QueueClient):
    """In-process queue. Clients created with the same name share the queue."""

    _queues: Dict[str, "queue.Queue[Message]"] = {}
    _offsets: Dict[str, "itertools.count[int]"] = {}
    _lock = threading.Lock()

    def __init__(self, name: str):
        super().__init__(name)
        self._queue: Optional["queue.Queue[Message]"] = None

    @classmethod
    def reset(cls) -> None:
        """Drops every in-process queue."""
        with cls._lock:
            cls._queues.clear()
            cls._offsets.clear()

    def connect(self) -> None:
        logger.bind(queue=self.name).info("MemoryQueueClient connected")

    def create(self) -> None:
        with self._lock:
            if self.name not in self._queues:
                self._queues[self.name] = queue.Queue()
                self._offsets[self.name] = itertools.count()
            self._queue = self._queues[self.name]

    def _require_queue(self) -> "queue.Queue[Message]":
        if self._queue is None:
            with self._lock:
                self._queue = self._queues.get(self.name)
        if self._queue is None:
            raise QueueException(f"Queue '{self.name}' does not exist, call create() first")
        return self._queue

    def clear(self) -> None:
        q = self._require_queue()
        dropped = 0
        while True:
            try:
                q.get_nowait()
            except queue.Empty:
                break
            dropped += 1
        logger.debug(f"Cleared {dropped} messages from queue '{self.name}'")

    def send(self, payload: bytes) -> Dict[str, Any]:
        q = self._require_queue()
        meta: Dict[str, Any] = {
            "queue": self.name,
            "offset": next(self._offsets[self.name]),
            "enqueued_at": get_time(seconds_precision=False),
        }
        q.put((payload, meta))
        return meta

    def poll(self, timeout_s: float) -> Optional[Message]:
        q = self._require_queue()
        try:
            if timeout_s > 0:
                return q.get(timeout=timeout_s)
            return q.get_nowait()
        except queue.Empty:
            return None

    def close(self) -> None:
        self._queue = None
        logger.info("MemoryQueueClient closed.")

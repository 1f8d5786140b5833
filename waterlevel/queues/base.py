from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

Message = Tuple[bytes, Dict[str, Any]]


class QueueClient(ABC):
    """
    Base interface of the message queue clients.
    poll() returns (payload, meta) or None when no message is available.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def connect(self) -> None:
        """Opens the connection with the queue backend."""

    @abstractmethod
    def create(self) -> None:
        """Creates the queue. Does nothing if it already exists."""

    @abstractmethod
    def clear(self) -> None:
        """Discards every pending message."""

    @abstractmethod
    def send(self, payload: bytes) -> Dict[str, Any]:
        """Enqueues a message and returns its metadata."""

    @abstractmethod
    def poll(self, timeout_s: float) -> Optional[Message]:
        """Dequeues a message, or None if there is none within timeout_s."""

    @abstractmethod
    def close(self) -> None:
        """Closes the connection and releases resources."""

    def receive(self, max_messages: int = 32, timeout_s: float = 0.0) -> List[Message]:
        """Dequeues up to max_messages. Only the first poll waits for timeout_s."""
        messages: List[Message] = []
        item = self.poll(timeout_s)
        while item is not None:
            messages.append(item)
            if len(messages) >= max_messages:
                break
            item = self.poll(0.0)
        return messages

    def __enter__(self) -> "QueueClient":
        self.connect()
        return self

    def __exit__(self, *_) -> None:
        self.close()

"""
Chat history storage, keyed by conversation thread id.

The advisor only relies on the ConversationStore interface, so the in-memory
store can be replaced by a durable one (database, redis...) without touching
the chat logic.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

Message = Dict[str, str]


class ConversationStore(ABC):
    """Key-value store of chat messages per thread."""

    @abstractmethod
    def get(self, thread_id: str) -> Optional[List[Message]]:
        """Return the stored messages for thread_id, or None if unknown."""

    @abstractmethod
    def set(self, thread_id: str, messages: List[Message]) -> None:
        """Replace the stored messages for thread_id."""

    @abstractmethod
    def delete(self, thread_id: str) -> None:
        """Forget thread_id. Unknown ids are ignored."""


class InMemoryConversationStore(ConversationStore):
    """
    Process-local store. No eviction; everything is lost on restart.
    """

    def __init__(self):
        self._threads: Dict[str, List[Message]] = {}
        self._lock = threading.Lock()

    def get(self, thread_id: str) -> Optional[List[Message]]:
        with self._lock:
            messages = self._threads.get(thread_id)
            return list(messages) if messages is not None else None

    def set(self, thread_id: str, messages: List[Message]) -> None:
        with self._lock:
            self._threads[thread_id] = list(messages)

    def delete(self, thread_id: str) -> None:
        with self._lock:
            self._threads.pop(thread_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._threads)

"""Conversation persistence.

``ConversationRepository`` is the interface the chat service depends on.
``InMemoryConversationRepository`` is a thread-safe, process-local
implementation: data is lost on restart.  Stored conversations are copied
on the way in and on the way out so callers never share mutable state
with the store.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from clippy.errors import ConversationNotFound
from clippy.models import Conversation

logger = logging.getLogger(__name__)


class ConversationRepository(ABC):
    """Storage collaborator for conversations."""

    @abstractmethod
    async def create(self, conversation: Conversation) -> None: ...

    @abstractmethod
    async def update(self, conversation: Conversation) -> None: ...

    @abstractmethod
    async def describe(self, conversation_id: str) -> Conversation:
        """Return the conversation or raise ``ConversationNotFound``."""

    @abstractmethod
    async def list(self) -> list[Conversation]:
        """Return every conversation, most recently updated first."""


class InMemoryConversationRepository(ConversationRepository):
    def __init__(self) -> None:
        self._store: dict[str, Conversation] = {}
        self._lock = threading.Lock()

    async def create(self, conversation: Conversation) -> None:
        with self._lock:
            if conversation.id in self._store:
                raise ValueError(f"conversation {conversation.id} already exists")
            self._store[conversation.id] = conversation.model_copy(deep=True)
        logger.debug("Stored new conversation %s", conversation.id)

    async def update(self, conversation: Conversation) -> None:
        with self._lock:
            if conversation.id not in self._store:
                raise ConversationNotFound(conversation.id)
            self._store[conversation.id] = conversation.model_copy(deep=True)

    async def describe(self, conversation_id: str) -> Conversation:
        with self._lock:
            stored = self._store.get(conversation_id)
            if stored is None:
                raise ConversationNotFound(conversation_id)
            return stored.model_copy(deep=True)

    async def list(self) -> list[Conversation]:
        with self._lock:
            conversations = [c.model_copy(deep=True) for c in self._store.values()]
        conversations.sort(key=lambda c: c.updated_at, reverse=True)
        return conversations

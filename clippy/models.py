"""Conversation domain model.

The persistence layer owns these objects; the orchestration receives a
loaded ``Conversation``, appends to its messages and hands it back.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

DEFAULT_TITLE = "Untitled conversation"


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(UTC)


class Role(StrEnum):
    """Author of a persisted message.  Tool results are never persisted."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    id: str = Field(default_factory=_new_id)
    role: Role
    content: str
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Conversation(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str = DEFAULT_TITLE
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @classmethod
    def start(cls, first_message: str) -> Conversation:
        """Create a new conversation whose first turn is the user's message."""
        conversation = cls()
        conversation.append(Role.USER, first_message)
        return conversation

    def append(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        self.updated_at = message.created_at
        return message

    def user_messages(self) -> list[Message]:
        return [m for m in self.messages if m.role == Role.USER]

    def snapshot(self) -> Conversation:
        """Deep copy handed to concurrent readers."""
        return self.model_copy(deep=True)

    def summary(self) -> Conversation:
        """Copy without messages, used when listing conversations."""
        return self.model_copy(update={"messages": []})

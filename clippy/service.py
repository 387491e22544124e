"""Conversation use cases behind the HTTP API and the CLI.

Requests are validated here, before any model call is made.
"""

from __future__ import annotations

import logging

from clippy.coordinator import ConversationAssistant, ConversationCoordinator
from clippy.errors import ValidationError
from clippy.models import Conversation, Role
from clippy.repository import ConversationRepository

logger = logging.getLogger(__name__)


def _require(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(field)
    return value


class ChatService:
    def __init__(self, assistant: ConversationAssistant, repository: ConversationRepository):
        self.assistant = assistant
        self.repository = repository
        self.coordinator = ConversationCoordinator(assistant, repository)

    async def start_conversation(self, message: str) -> tuple[Conversation, str]:
        """Create a conversation from the user's first message.

        Returns the persisted conversation and the assistant's reply.
        """
        _require(message, "message")
        conversation = Conversation.start(message)
        return await self.coordinator.start(conversation)

    async def continue_conversation(self, conversation_id: str, message: str) -> str:
        """Append a user message to an existing conversation and answer it."""
        _require(conversation_id, "conversation_id")
        _require(message, "message")

        conversation = await self.repository.describe(conversation_id)
        conversation.append(Role.USER, message)

        reply = await self.assistant.reply(conversation)

        conversation.append(Role.ASSISTANT, reply)
        await self.repository.update(conversation)
        logger.info("Conversation %s now has %d messages", conversation_id, len(conversation.messages))
        return reply

    async def list_conversations(self) -> list[Conversation]:
        """All conversations, without their messages."""
        return [c.summary() for c in await self.repository.list()]

    async def describe_conversation(self, conversation_id: str) -> Conversation:
        _require(conversation_id, "conversation_id")
        return await self.repository.describe(conversation_id)

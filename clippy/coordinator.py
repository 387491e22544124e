"""Concurrent title + first reply for a brand-new conversation.

Both tasks read the same snapshot of the conversation and never see each
other's output.  The merge happens after both have finished:

* a failed title is logged and dropped, the placeholder title stays;
* a failed reply fails the whole operation and nothing is persisted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple, Protocol

from clippy.models import Conversation, Role
from clippy.repository import ConversationRepository

logger = logging.getLogger(__name__)


class TaskOutcome(NamedTuple):
    """Result of one task started by ``run_concurrently``."""

    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_concurrently(*factories: Callable[[], Awaitable[Any]]) -> list[TaskOutcome]:
    """Start every coroutine as its own task and wait for all of them.

    Returns one ``TaskOutcome`` per factory, in argument order.  A failing
    task does not cancel the others; cancelling the caller cancels them all.
    """
    tasks = [asyncio.ensure_future(factory()) for factory in factories]
    try:
        results = await asyncio.gather(*tasks, return_exceptions=True)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    outcomes: list[TaskOutcome] = []
    for result in results:
        if isinstance(result, asyncio.CancelledError):
            # A task cancelled on its own is a cancellation of the whole join
            raise result
        if isinstance(result, BaseException):
            outcomes.append(TaskOutcome(error=result))
        else:
            outcomes.append(TaskOutcome(value=result))
    return outcomes


class ConversationAssistant(Protocol):
    async def title(self, conversation: Conversation) -> str: ...

    async def reply(self, conversation: Conversation) -> str: ...


class ConversationCoordinator:
    def __init__(self, assistant: ConversationAssistant, repository: ConversationRepository):
        self.assistant = assistant
        self.repository = repository

    async def start(self, conversation: Conversation) -> tuple[Conversation, str]:
        """Title and answer *conversation*, then persist it.

        Returns the stored conversation and the reply text.  Raises the
        reply's error unchanged if the reply could not be generated.
        """
        snapshot = conversation.snapshot()
        title_outcome, reply_outcome = await run_concurrently(
            lambda: self.assistant.title(snapshot),
            lambda: self.assistant.reply(snapshot),
        )

        if title_outcome.ok:
            conversation.title = title_outcome.value
        else:
            logger.error(
                "Failed to generate title for conversation %s: %s",
                conversation.id, title_outcome.error,
            )

        if not reply_outcome.ok:
            raise reply_outcome.error

        reply = reply_outcome.value
        conversation.append(Role.ASSISTANT, reply)
        await self.repository.create(conversation)
        logger.info("Started conversation %s (%r)", conversation.id, conversation.title)
        return conversation, reply

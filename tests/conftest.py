"""Shared test fixtures for the Clippy test suite."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ["METRICS_ENABLED"] = "false"


@pytest.fixture
def make_llm():
    """Factory fixture for mock chat models.

    Returns ``(llm, bound)``: ``llm.bind_tools(...)`` returns ``bound``,
    whose ``ainvoke`` yields *responses* in order (or calls *responses*
    when it is a function).
    """

    def _make(responses):
        bound = MagicMock()
        bound.ainvoke = AsyncMock(side_effect=responses)
        llm = MagicMock()
        llm.bind_tools.return_value = bound
        return llm, bound

    return _make


@pytest.fixture
def make_title_llm():
    """Factory fixture for a mock title model returning *content*."""
    from langchain_core.messages import AIMessage

    def _make(content: str | None = None, error: Exception | None = None):
        llm = MagicMock()
        if error is not None:
            llm.ainvoke = AsyncMock(side_effect=error)
        else:
            llm.ainvoke = AsyncMock(return_value=AIMessage(content=content))
        return llm

    return _make


class FakeAssistant:
    """Stand-in for ``Assistant`` that records what it was asked.

    ``title_result`` / ``reply_result`` may be a string, an exception to
    raise, or an async callable receiving the conversation.
    """

    def __init__(self, title_result="A title", reply_result="A reply"):
        self.title_result = title_result
        self.reply_result = reply_result
        self.title_calls = []
        self.reply_calls = []

    async def _resolve(self, result, conversation):
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return await result(conversation)
        return result

    async def title(self, conversation):
        self.title_calls.append(conversation)
        return await self._resolve(self.title_result, conversation)

    async def reply(self, conversation):
        self.reply_calls.append(conversation)
        return await self._resolve(self.reply_result, conversation)

    async def aclose(self):
        pass


@pytest.fixture
def fake_assistant():
    return FakeAssistant()


@pytest.fixture
def repository():
    from clippy.repository import InMemoryConversationRepository

    return InMemoryConversationRepository()

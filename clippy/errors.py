"""Error taxonomy for the chat service.

Only ``ToolExecutionFailed`` (and its subclasses) is recovered locally: the
assistant turns it into a tool-result message so the model can react.
Everything else raised on the reply path is fatal to that reply.

Cancellation is plain ``asyncio.CancelledError`` and is never caught here.
"""

from __future__ import annotations


class ChatError(Exception):
    """Base class for every error raised by the chat service."""


class ValidationError(ChatError):
    """A request was rejected before any orchestration ran."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class ConversationNotFound(ChatError):
    """The referenced conversation does not exist."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"conversation {conversation_id} not found")


# ── Model output ─────────────────────────────────────────────────────


class ModelCallFailed(ChatError):
    """Transport, quota or auth failure reported by the model client."""


class EmptyModelResponse(ChatError):
    """The model answered with neither text nor tool calls."""


class EmptyTitle(ChatError):
    """The model produced a blank title."""


class EmptyConversation(ChatError):
    """A reply was requested for a conversation without messages."""


class LoopExhausted(ChatError):
    """The model kept requesting tools past the iteration bound."""

    def __init__(self, iterations: int):
        self.iterations = iterations
        super().__init__(
            f"too many tool calls ({iterations} model calls), unable to generate reply"
        )


# ── Tools ────────────────────────────────────────────────────────────


class ToolExecutionFailed(ChatError):
    """A single tool call failed.  Localized to that call."""


class ToolNotFound(ToolExecutionFailed):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown tool: {name}")


class Unconfigured(ToolExecutionFailed):
    """A credential required by an external data tool is missing."""


class ExternalFetchFailed(ChatError):
    """Every attempt of an external data call failed.

    ``fallback`` is a user-safe text the caller may display instead of the
    real data; the last underlying error is chained as ``__cause__``.
    """

    def __init__(self, fallback: str, last_error: BaseException | None, attempts: int):
        self.fallback = fallback
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"request failed after {attempts} attempts: {last_error}")

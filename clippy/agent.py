"""LangGraph-based assistant for the Clippy chat service.

Architecture:
  Replies are produced by a small LangGraph ``StateGraph``:

    1. **model**:      the reply LLM, with every registered tool bound
    2. **tools**:      runs the tool calls of the latest model turn, one
                      after the other, in the order they were issued
    3. **exhausted**:  raises ``LoopExhausted`` once the model has been
                      called ``max_iterations`` times without answering

  Routing:
    model → (tool calls?)    → tools → (bound reached?) → exhausted
                                     → (otherwise)      → model (loop)
    model → (no tool calls?) → END

  A failing tool never ends the loop, and neither does a call whose
  arguments could not be parsed: the error becomes the text of that
  call's tool-result turn so the model can react to it.

  Titles are a single call to the cheaper "fast" model, with no tools.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AnyMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from clippy.config import ANTHROPIC_API_KEY, FAST_MODEL_NAME, MAX_REPLY_ITERATIONS, MODEL_NAME
from clippy.errors import (
    EmptyConversation,
    EmptyModelResponse,
    EmptyTitle,
    LoopExhausted,
    ModelCallFailed,
)
from clippy.models import Conversation, Role
from clippy.prompts import SYSTEM_PROMPT, TITLE_PROMPT
from clippy.services.metrics import metrics
from clippy.tools.base import ToolRegistry
from clippy.tools.date import DateTool
from clippy.tools.holidays import HolidaysTool
from clippy.tools.weather import WeatherTool

logger = logging.getLogger(__name__)

EMPTY_CONVERSATION_TITLE = "An empty conversation"
MAX_TITLE_LENGTH = 80
_TITLE_STRIP_CHARS = " \t\r\n-\"'"


# ── State schema ─────────────────────────────────────────────────────


class ReplyState(TypedDict):
    """The state that flows through the reply graph.

    ``messages`` uses the ``add_messages`` reducer so each node only
    returns the turns it adds.  ``iterations`` counts model calls.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    iterations: int


# ── Tools and LLM builders ──────────────────────────────────────────


def default_registry() -> ToolRegistry:
    """The tool catalogue advertised to the model in production."""
    return ToolRegistry([DateTool(), HolidaysTool(), WeatherTool()])


def _build_llm() -> ChatAnthropic:
    """Build the reply LLM.  Tools are bound by the assistant."""
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.2,
        max_tokens=1024,
    )


def _build_fast_llm() -> ChatAnthropic:
    """Build the cheap LLM used for conversation titles (no tools)."""
    return ChatAnthropic(
        model=FAST_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.0,
        max_tokens=64,
    )


# ── Helpers ──────────────────────────────────────────────────────────


def message_text(message: BaseMessage) -> str:
    """Plain text of a model message, whether content is a string or blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def clean_title(raw: str) -> str:
    """Normalise a model-generated title.

    Blank output is an error; newlines become spaces, stray quotes,
    hyphens and whitespace are stripped from both ends, and the result is
    cut at ``MAX_TITLE_LENGTH`` characters.
    """
    if not raw.strip():
        raise EmptyTitle("empty response from the model for title generation")
    title = raw.replace("\n", " ")
    title = title.strip(_TITLE_STRIP_CHARS)
    return title[:MAX_TITLE_LENGTH]


def _pending_calls(message: AIMessage) -> list[tuple[dict, bool]]:
    """Every tool call of a model turn as ``(call, valid)``, in issue order.

    Calls whose arguments could not be parsed land in
    ``invalid_tool_calls``; they are kept so each one still gets a result.
    When the content carries ``tool_use`` blocks, their order wins.
    """
    calls = [(call, True) for call in message.tool_calls]
    calls += [(call, False) for call in message.invalid_tool_calls]

    blocks = message.content if isinstance(message.content, list) else []
    ids = [b.get("id") for b in blocks if isinstance(b, dict) and b.get("type") == "tool_use"]
    if ids:
        position = {call_id: i for i, call_id in enumerate(ids)}
        calls.sort(key=lambda item: position.get(item[0].get("id"), len(position)))
    return calls


def to_turns(conversation: Conversation) -> list[BaseMessage]:
    """Map persisted messages onto model turns."""
    turns: list[BaseMessage] = []
    for message in conversation.messages:
        if message.role == Role.USER:
            turns.append(HumanMessage(content=message.content))
        elif message.role == Role.ASSISTANT:
            turns.append(AIMessage(content=message.content))
    return turns


async def _call_model(llm: Any, turns: list[BaseMessage], operation: str) -> AIMessage:
    """Invoke *llm* once, recording metrics and wrapping client failures."""
    try:
        with metrics.track("anthropic", operation):
            response = await llm.ainvoke(turns)
    except Exception as exc:
        raise ModelCallFailed(f"{operation} failed: {exc}") from exc

    if not isinstance(response, AIMessage):
        raise EmptyModelResponse(f"no message returned by the model for {operation}")
    return response


# ── Assistant ────────────────────────────────────────────────────────


class Assistant:
    """Generates replies (with tool calling) and titles for conversations."""

    def __init__(
        self,
        llm: BaseChatModel | None = None,
        title_llm: BaseChatModel | None = None,
        registry: ToolRegistry | None = None,
        *,
        max_iterations: int = MAX_REPLY_ITERATIONS,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.registry = registry if registry is not None else default_registry()
        self.max_iterations = max_iterations

        llm = llm or _build_llm()
        self._llm = llm.bind_tools(self.registry.definitions()) if len(self.registry) else llm
        self._title_llm = title_llm or _build_fast_llm()
        self._graph = self._build_graph()

        logger.debug(
            "Assistant ready: tools: %s, max iterations: %d",
            ", ".join(self.registry.names), max_iterations,
        )

    # ── Graph ────────────────────────────────────────────────────────

    def _build_graph(self):
        graph = StateGraph(ReplyState)

        graph.add_node("model", self._model_node)
        graph.add_node("tools", self._tools_node)
        graph.add_node("exhausted", self._exhausted_node)

        graph.set_entry_point("model")
        graph.add_edge("exhausted", END)
        graph.add_conditional_edges("model", self._after_model, {"tools": "tools", END: END})
        graph.add_conditional_edges(
            "tools", self._after_tools, {"model": "model", "exhausted": "exhausted"},
        )
        return graph.compile()

    async def _model_node(self, state: ReplyState) -> dict:
        response = await _call_model(self._llm, state["messages"], "reply_invoke")
        if not _pending_calls(response) and not message_text(response).strip():
            stop_reason = response.response_metadata.get("stop_reason", "unknown")
            logger.warning("Model returned an empty answer (stop reason: %s)", stop_reason)
            raise EmptyModelResponse(f"no choices returned by the model (stop reason: {stop_reason})")
        return {"messages": [response], "iterations": state["iterations"] + 1}

    async def _tools_node(self, state: ReplyState) -> dict:
        results: list[ToolMessage] = []
        # One at a time, in the order the model issued them
        for call, valid in _pending_calls(state["messages"][-1]):
            if valid:
                content = await self._dispatch(call["name"], json.dumps(call.get("args") or {}))
            else:
                logger.error("Tool call %s has malformed arguments: %s", call.get("name"), call.get("error"))
                content = f"Tool execution failed: invalid arguments: {call.get('error') or call.get('args')}"
            results.append(
                ToolMessage(content=content, tool_call_id=call.get("id") or "", name=call.get("name"))
            )
        return {"messages": results}

    def _exhausted_node(self, state: ReplyState) -> dict:
        raise LoopExhausted(state["iterations"])

    @staticmethod
    def _after_model(state: ReplyState) -> str:
        last_message = state["messages"][-1]
        if isinstance(last_message, AIMessage) and _pending_calls(last_message):
            return "tools"
        return END

    def _after_tools(self, state: ReplyState) -> str:
        if state["iterations"] >= self.max_iterations:
            return "exhausted"
        return "model"

    async def _dispatch(self, name: str, arguments: str) -> str:
        logger.info("Tool call received: %s %s", name, arguments)
        try:
            return await self.registry.execute(name, arguments)
        except Exception as exc:
            logger.error("Tool execution failed: %s: %s", name, exc)
            return f"Tool execution failed: {exc}"

    # ── Public API ───────────────────────────────────────────────────

    async def reply(self, conversation: Conversation) -> str:
        """Run the tool-calling loop and return the model's final answer."""
        if not conversation.messages:
            raise EmptyConversation("conversation has no messages")

        logger.info("Generating reply for conversation %s", conversation.id)
        seed: list[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT), *to_turns(conversation)]
        final_state = await self._graph.ainvoke(
            {"messages": seed, "iterations": 0},
            # model + tools per iteration, plus the exhausted step and some slack
            config={"recursion_limit": 2 * self.max_iterations + 5},
        )
        answer = final_state["messages"][-1]
        logger.debug(
            "Reply for %s ready after %d model call(s)",
            conversation.id, final_state["iterations"],
        )
        return message_text(answer)

    async def title(self, conversation: Conversation) -> str:
        """Summarise the user's messages into a one-line title."""
        if not conversation.messages:
            return EMPTY_CONVERSATION_TITLE

        logger.info("Generating title for conversation %s", conversation.id)
        turns: list[BaseMessage] = [SystemMessage(content=TITLE_PROMPT)]
        turns.extend(HumanMessage(content=m.content) for m in conversation.user_messages())

        response = await _call_model(self._title_llm, turns, "title_invoke")
        return clean_title(message_text(response))

    async def aclose(self) -> None:
        await self.registry.aclose()

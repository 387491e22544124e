"""Tool interface and the name-keyed registry the assistant dispatches through.

Tools receive their arguments as the raw JSON payload the model produced
and own its parsing.  A malformed payload is a failure of that one call,
reported through ``ToolExecutionFailed``.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from types import MappingProxyType
from typing import Any

from clippy.errors import ToolExecutionFailed, ToolNotFound

logger = logging.getLogger(__name__)


def parse_arguments(arguments: str) -> dict[str, Any]:
    """Decode a tool-call payload into a dict, or raise ``ToolExecutionFailed``."""
    if not arguments or not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as exc:
        raise ToolExecutionFailed(f"invalid arguments: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ToolExecutionFailed("invalid arguments: expected a JSON object")
    return parsed


class Tool(ABC):
    """A capability the model may call mid-reply.

    ``name`` is the dispatch key and the function name advertised to the
    model; ``parameters`` is a JSON-schema object describing the
    arguments.
    """

    name: str
    description: str
    parameters: dict[str, Any] = {"type": "object", "properties": {}}

    @abstractmethod
    async def execute(self, arguments: str) -> str:
        """Run the tool with the serialised JSON *arguments*."""

    def definition(self) -> dict[str, Any]:
        """OpenAI-style function definition, accepted by ``bind_tools``."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    async def aclose(self) -> None:
        """Release network resources held by the tool."""


class ToolRegistry:
    """Immutable catalogue of tools, keyed by name."""

    def __init__(self, tools: Iterable[Tool] = ()):
        by_name: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in by_name:
                raise ValueError(f"duplicate tool name: {tool.name}")
            by_name[tool.name] = tool
        self._tools = MappingProxyType(by_name)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFound(name) from None

    def definitions(self) -> list[dict[str, Any]]:
        return [tool.definition() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: str) -> str:
        return await self.get(name).execute(arguments)

    async def aclose(self) -> None:
        for tool in self._tools.values():
            await tool.aclose()

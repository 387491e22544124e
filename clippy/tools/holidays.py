"""Tool for local bank and public holidays.

The feed is downloaded and parsed on every call, then narrowed down by
the optional ``before_date`` / ``after_date`` / ``max_count`` arguments.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from clippy.errors import ExternalFetchFailed, ToolExecutionFailed
from clippy.services.holiday_calendar import HolidayCalendarClient, filter_holidays
from clippy.tools.base import Tool, parse_arguments

logger = logging.getLogger(__name__)


def _parse_bound(args: dict[str, Any], key: str) -> datetime | None:
    """Parse an RFC 3339 timestamp (or a bare date) argument, keeping its offset."""
    value = args.get(key)
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ToolExecutionFailed(f"invalid {key}: {exc}") from exc


def _parse_max_count(args: dict[str, Any]) -> int | None:
    value = args.get("max_count")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ToolExecutionFailed("invalid arguments: max_count must be an integer")
    return value


class HolidaysTool(Tool):
    name = "get_holidays"
    description = (
        "Gets local bank and public holidays. Each line is a single holiday "
        "in the format 'YYYY-MM-DD: Holiday Name'."
    )
    parameters = {
        "type": "object",
        "properties": {
            "before_date": {
                "type": "string",
                "description": (
                    "Optional date in RFC3339 format to get holidays before this date. "
                    "If not provided, all holidays will be returned."
                ),
            },
            "after_date": {
                "type": "string",
                "description": (
                    "Optional date in RFC3339 format to get holidays after this date. "
                    "If not provided, all holidays will be returned."
                ),
            },
            "max_count": {
                "type": "integer",
                "description": (
                    "Optional maximum number of holidays to return. "
                    "If not provided, all holidays will be returned."
                ),
            },
        },
    }

    def __init__(self, client: HolidayCalendarClient | None = None):
        self._client = client or HolidayCalendarClient()

    async def execute(self, arguments: str) -> str:
        args = parse_arguments(arguments)
        before = _parse_bound(args, "before_date")
        after = _parse_bound(args, "after_date")
        max_count = _parse_max_count(args)

        try:
            events = await self._client.fetch_events()
        except ExternalFetchFailed as exc:
            logger.error("Failed to load holiday calendar %s: %s", self._client.url, exc.last_error)
            raise ToolExecutionFailed(exc.fallback) from exc

        return filter_holidays(events, before=before, after=after, max_count=max_count)

    async def aclose(self) -> None:
        await self._client.aclose()

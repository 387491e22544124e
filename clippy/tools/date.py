"""Tool that tells the model what time it is."""

from __future__ import annotations

from datetime import datetime

from clippy.tools.base import Tool


class DateTool(Tool):
    name = "get_today_date"
    description = "Get today's date and time in RFC3339 format"

    async def execute(self, arguments: str) -> str:
        return datetime.now().astimezone().isoformat(timespec="seconds")

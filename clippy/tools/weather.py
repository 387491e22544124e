"""Tool for current weather conditions at a location."""

from __future__ import annotations

import logging

from clippy.errors import ExternalFetchFailed, ToolExecutionFailed
from clippy.services.weather_client import WeatherClient
from clippy.tools.base import Tool, parse_arguments

logger = logging.getLogger(__name__)


class WeatherTool(Tool):
    name = "get_weather"
    description = "Get weather at the given location"
    parameters = {
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "City name or location",
            },
        },
        "required": ["location"],
    }

    def __init__(self, client: WeatherClient | None = None):
        self._client = client or WeatherClient()

    async def execute(self, arguments: str) -> str:
        args = parse_arguments(arguments)
        location = str(args.get("location") or "").strip()
        if not location:
            raise ToolExecutionFailed("invalid arguments: location is required")

        try:
            return await self._client.get_current_weather(location)
        except ExternalFetchFailed as exc:
            # The model gets the friendly text; the real cause goes to the logs
            logger.error("Weather lookup for %r failed: %s", location, exc.last_error)
            return exc.fallback

    async def aclose(self) -> None:
        await self._client.aclose()

"""Async client for the WeatherAPI.com current-conditions endpoint.

API docs: https://www.weatherapi.com/docs/
Requests authenticate with a ``key`` query parameter.  Every lookup goes
through a ``RetryingFetcher`` (3 attempts, 200 ms / 400 ms backoff).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from clippy.config import HTTP_TIMEOUT_SECONDS, WEATHER_API_KEY, WEATHER_BASE_URL
from clippy.errors import Unconfigured
from clippy.services.metrics import metrics
from clippy.services.retry import RetryingFetcher

logger = logging.getLogger(__name__)

WEATHER_FALLBACK = "Unable to fetch weather data at the moment. The weather is probably fine though!"

# Thresholds for the optional lines of the report
UV_WARNING_THRESHOLD = 6


class WeatherAPIError(Exception):
    """Raised when WeatherAPI answers with a non-200 status."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def format_weather(data: dict[str, Any]) -> str:
    """Render a ``current.json`` payload as a short human-readable report."""
    location = data["location"]
    current = data["current"]
    time_of_day = "during the day" if current.get("is_day", 1) else "at night"

    lines = [
        f"Current weather in {location['name']}, {location['country']} ({time_of_day}):",
        f"Temperature: {current['temp_c']:.1f}°C (feels like {current['feelslike_c']:.1f}°C)",
        f"Conditions: {current['condition']['text']}",
        f"Wind: {current['wind_kph']:.1f} km/h from {current['wind_dir']}",
        f"Humidity: {current['humidity']}%",
        f"Cloud coverage: {current['cloud']}%",
    ]

    precip = current.get("precip_mm", 0) or 0
    if precip > 0:
        lines.append(f"Precipitation: {precip:.1f} mm")

    uv = current.get("uv", 0) or 0
    if uv > UV_WARNING_THRESHOLD:
        lines.append(f"High UV index: {uv:.0f} (use sun protection)")

    return "\n".join(lines)


class WeatherClient:
    """Current weather lookups with retries.

    ``get_current_weather`` raises ``Unconfigured`` straight away when no
    API key is set, and ``ExternalFetchFailed`` (whose ``fallback`` is
    ``WEATHER_FALLBACK``) once every attempt has failed.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = WEATHER_BASE_URL,
        *,
        fetcher: RetryingFetcher | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = WEATHER_API_KEY if api_key is None else api_key
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url, timeout=HTTP_TIMEOUT_SECONDS,
        )
        self._fetcher = fetcher or RetryingFetcher(fallback=WEATHER_FALLBACK, name="WeatherAPI")

    async def get_current_weather(self, location: str) -> str:
        if not self._api_key:
            raise Unconfigured("WEATHER_API_KEY not set")
        return await self._fetcher.fetch(lambda: self._fetch_weather(location))

    async def _fetch_weather(self, location: str) -> str:
        with metrics.track("weatherapi", "GET /current.json"):
            response = await self._client.get(
                "/current.json",
                params={"key": self._api_key, "q": location, "aqi": "no"},
            )
            if response.status_code != 200:
                raise WeatherAPIError(
                    f"API returned {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )
            return format_weather(response.json())

    async def aclose(self) -> None:
        await self._client.aclose()

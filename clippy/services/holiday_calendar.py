"""Holiday calendar feed: download, parse and filter.

The feed is an iCalendar (``.ics``) document.  Every ``VEVENT`` becomes a
``CalendarEvent`` holding its all-day start date and summary, in feed
order.  Feeds are not guaranteed to be sorted, so ``filter_holidays``
never assumes they are.  Nothing is cached between tool calls.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time
from typing import NamedTuple

import httpx
from icalendar import Calendar

from clippy.config import HOLIDAY_CALENDAR_LINK, HTTP_TIMEOUT_SECONDS
from clippy.services.metrics import metrics
from clippy.services.retry import RetryingFetcher

logger = logging.getLogger(__name__)

CALENDAR_FALLBACK = "Failed to load holiday events"


class CalendarEvent(NamedTuple):
    date: date
    summary: str


def _start_date(component) -> date | None:
    """Return the all-day start date of a VEVENT, or ``None`` if unusable."""
    try:
        dtstart = component.decoded("DTSTART")
    except (KeyError, TypeError, ValueError):
        return None
    if isinstance(dtstart, datetime):
        return dtstart.date()
    if isinstance(dtstart, date):
        return dtstart
    return None


def parse_calendar(ics_text: str | bytes) -> list[CalendarEvent]:
    """Parse an ICS document into events, skipping those without a start date."""
    calendar = Calendar.from_ical(ics_text)
    events: list[CalendarEvent] = []
    for component in calendar.walk("VEVENT"):
        start = _start_date(component)
        if start is None:
            logger.debug("Skipping event with malformed DTSTART: %r", component.get("SUMMARY"))
            continue
        events.append(CalendarEvent(start, str(component.get("SUMMARY", ""))))
    return events


def _as_instant(value: date) -> datetime:
    """Midnight UTC for a date, UTC for a naive datetime, else *value* itself."""
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    return datetime.combine(value, time.min, tzinfo=UTC)


def filter_holidays(
    events: list[CalendarEvent],
    *,
    before: date | datetime | None = None,
    after: date | datetime | None = None,
    max_count: int | None = None,
) -> str:
    """Format the events within the bounds as ``YYYY-MM-DD: summary`` lines.

    Each event starts at midnight UTC of its date and is compared with
    the bounds as an instant, so ``after=2024-06-15T12:00:00Z`` excludes
    an event on 2024-06-15.  Both bounds are inclusive.  The count cap is
    checked before the bounds on each event.  Returns ``""`` when nothing
    matches.
    """
    before_at = _as_instant(before) if before is not None else None
    after_at = _as_instant(after) if after is not None else None

    holidays: list[str] = []
    for event in events:
        if max_count and max_count > 0 and len(holidays) >= max_count:
            break
        starts_at = _as_instant(event.date)
        if before_at is not None and starts_at > before_at:
            continue
        if after_at is not None and starts_at < after_at:
            continue
        holidays.append(f"{event.date.isoformat()}: {event.summary}")
    return "\n".join(holidays)


class HolidayCalendarClient:
    """Downloads and parses the holiday feed, retrying transient failures."""

    def __init__(
        self,
        url: str = HOLIDAY_CALENDAR_LINK,
        *,
        fetcher: RetryingFetcher | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._client = http_client or httpx.AsyncClient(
            timeout=HTTP_TIMEOUT_SECONDS, follow_redirects=True,
        )
        self._fetcher = fetcher or RetryingFetcher(fallback=CALENDAR_FALLBACK, name="Holiday calendar")

    async def fetch_events(self) -> list[CalendarEvent]:
        return await self._fetcher.fetch(self._download)

    async def _download(self) -> list[CalendarEvent]:
        with metrics.track("holiday_calendar", "GET feed"):
            response = await self._client.get(self.url)
            response.raise_for_status()
        return parse_calendar(response.content)

    async def aclose(self) -> None:
        await self._client.aclose()

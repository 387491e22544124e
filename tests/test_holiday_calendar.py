"""Tests for holiday feed parsing and filtering."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from clippy.errors import ExternalFetchFailed
from clippy.services.holiday_calendar import (
    CALENDAR_FALLBACK,
    CalendarEvent,
    HolidayCalendarClient,
    _start_date,
    filter_holidays,
    parse_calendar,
)
from clippy.services.retry import RetryingFetcher

# ── Helpers ──────────────────────────────────────────────────────────


def _ics(*events: str) -> str:
    body = "".join(
        f"BEGIN:VEVENT\r\nUID:{i}@test\r\n{event}END:VEVENT\r\n"
        for i, event in enumerate(events)
    )
    return (
        "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//clippy//tests//EN\r\n"
        f"{body}END:VCALENDAR\r\n"
    )


FEED = _ics(
    "DTSTART;VALUE=DATE:20241225\r\nSUMMARY:Christmas Day\r\n",
    "DTSTART;VALUE=DATE:20240101\r\nSUMMARY:New Year's Day\r\n",
    "DTSTART;VALUE=DATE:20240911\r\nSUMMARY:National Day of Catalonia\r\n",
    "DTSTART;VALUE=DATE:20240624\r\nSUMMARY:Saint John's Day\r\n",
)

EVENTS = [
    CalendarEvent(date(2024, 1, 1), "New Year's Day"),
    CalendarEvent(date(2024, 6, 15), "Midsummer"),
    CalendarEvent(date(2024, 12, 25), "Christmas Day"),
]


# ── Tests: parsing ───────────────────────────────────────────────────


class TestParseCalendar:
    def test_events_are_kept_in_feed_order(self):
        events = parse_calendar(FEED)
        assert [e.date for e in events] == [
            date(2024, 12, 25),
            date(2024, 1, 1),
            date(2024, 9, 11),
            date(2024, 6, 24),
        ]
        assert events[0].summary == "Christmas Day"

    def test_datetime_start_is_reduced_to_its_date(self):
        events = parse_calendar(_ics("DTSTART:20240615T100000Z\r\nSUMMARY:Midsummer\r\n"))
        assert events == [CalendarEvent(date(2024, 6, 15), "Midsummer")]

    def test_event_without_start_is_skipped(self):
        events = parse_calendar(_ics(
            "SUMMARY:No date\r\n",
            "DTSTART;VALUE=DATE:20240101\r\nSUMMARY:New Year's Day\r\n",
        ))
        assert [e.summary for e in events] == ["New Year's Day"]

    def test_unparseable_start_is_skipped(self):
        component = MagicMock()
        component.decoded.side_effect = ValueError("Wrong date format")
        assert _start_date(component) is None

    def test_accepts_bytes(self):
        assert len(parse_calendar(FEED.encode("utf-8"))) == 4


# ── Tests: filtering ─────────────────────────────────────────────────


class TestFilterHolidays:
    def test_no_bounds_returns_everything(self):
        assert filter_holidays(EVENTS) == (
            "2024-01-01: New Year's Day\n"
            "2024-06-15: Midsummer\n"
            "2024-12-25: Christmas Day"
        )

    def test_after_with_max_count(self):
        result = filter_holidays(EVENTS, after=date(2024, 2, 1), max_count=1)
        assert result == "2024-06-15: Midsummer"

    def test_before_bound(self):
        assert filter_holidays(EVENTS, before=date(2024, 6, 30)) == (
            "2024-01-01: New Year's Day\n2024-06-15: Midsummer"
        )

    def test_bounds_are_inclusive(self):
        result = filter_holidays(EVENTS, after=date(2024, 6, 15), before=date(2024, 6, 15))
        assert result == "2024-06-15: Midsummer"

    def test_timestamp_bounds_compare_against_midnight_utc(self):
        noon = datetime(2024, 6, 15, 12, tzinfo=UTC)
        assert filter_holidays(EVENTS, after=noon) == "2024-12-25: Christmas Day"
        assert filter_holidays(EVENTS, before=noon) == (
            "2024-01-01: New Year's Day\n2024-06-15: Midsummer"
        )

    def test_timestamp_bound_offset_is_applied(self):
        # 2024-06-14 20:00 at UTC-5 is 2024-06-15 01:00 UTC
        late = datetime(2024, 6, 14, 20, tzinfo=timezone(timedelta(hours=-5)))
        assert filter_holidays(EVENTS, after=late) == "2024-12-25: Christmas Day"

    def test_naive_timestamp_is_taken_as_utc(self):
        midnight = datetime(2024, 6, 15)
        assert filter_holidays(EVENTS, after=midnight, before=midnight) == "2024-06-15: Midsummer"

    def test_unsorted_feed_is_not_cut_short(self):
        unsorted = [EVENTS[2], EVENTS[0], EVENTS[1]]
        assert filter_holidays(unsorted, after=date(2024, 2, 1)) == (
            "2024-12-25: Christmas Day\n2024-06-15: Midsummer"
        )

    def test_zero_or_negative_max_count_means_unbounded(self):
        assert filter_holidays(EVENTS, max_count=0).count("\n") == 2
        assert filter_holidays(EVENTS, max_count=-3).count("\n") == 2

    def test_nothing_matches_returns_empty_string(self):
        assert filter_holidays(EVENTS, after=date(2025, 1, 1)) == ""

    def test_empty_feed(self):
        assert filter_holidays([]) == ""


# ── Tests: client ────────────────────────────────────────────────────


class TestHolidayCalendarClient:
    @pytest.mark.asyncio
    async def test_downloads_and_parses_feed(self):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text=FEED)

        client = HolidayCalendarClient(
            "https://calendar.test/catalonia.ics",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        events = await client.fetch_events()
        await client.aclose()

        assert requested == ["https://calendar.test/catalonia.ics"]
        assert len(events) == 4

    @pytest.mark.asyncio
    async def test_retries_then_gives_up_with_fallback(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503, text="unavailable")

        client = HolidayCalendarClient(
            "https://calendar.test/catalonia.ics",
            fetcher=RetryingFetcher(base_delay=0, fallback=CALENDAR_FALLBACK),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        with pytest.raises(ExternalFetchFailed) as exc_info:
            await client.fetch_events()
        await client.aclose()

        assert calls == 3
        assert exc_info.value.fallback == CALENDAR_FALLBACK
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

"""
Date and time phrase parsing for chat replies.

Dates accept "today", "tomorrow", "day after tomorrow", weekday names, an
ordinal from the displayed date list, and literal dates in common formats.
Times accept HH:MM (24-hour), "H am/pm", "H:MM am/pm", or an ordinal from
the last displayed slot list. Anything else returns None so the caller can
re-prompt instead of guessing.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional

from salonbot.schemas.catalog_schema import WEEKDAY_NAMES
from salonbot.utils import normalize_text, parse_ordinal

# Tried in order against the cleaned reply.
DATE_FORMATS_WITH_YEAR = [
    "%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y",
    "%d %B %Y", "%d %b %Y", "%B %d %Y", "%b %d %Y",
    "%A %d %B %Y", "%a %d %b %Y",
]
DATE_FORMATS_WITHOUT_YEAR = [
    "%d/%m", "%d-%m", "%d %B", "%d %b", "%B %d", "%b %d", "%A %d %B", "%a %d %b",
]

_ISO_DATE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
_ORDINAL_SUFFIX = re.compile(r"\b(\d{1,2})(st|nd|rd|th)\b")
_TIME_12H_WITH_MINUTES = re.compile(r"\b(\d{1,2})[:.](\d{2})\s*(am|pm)\b")
_TIME_12H = re.compile(r"\b(\d{1,2})\s*(am|pm)\b")
_TIME_24H = re.compile(r"\b(\d{1,2}):(\d{2})\b")


def _clean_date_text(text: str) -> str:
    cleaned = normalize_text(text).replace(",", " ")
    cleaned = _ORDINAL_SUFFIX.sub(r"\1", cleaned)
    cleaned = re.sub(r"^(on|for)\s+", "", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip(" .!?")


def _weekday_date(cleaned: str, today: date) -> Optional[date]:
    words = cleaned.split()
    if not words or len(words) > 2:
        return None
    skip_today = len(words) == 2 and words[0] == "next"
    if len(words) == 2 and words[0] not in ("next", "this"):
        return None
    name = words[-1]
    for index, weekday in enumerate(WEEKDAY_NAMES):
        if name in (weekday, weekday[:3]):
            ahead = (index - today.weekday()) % 7
            if ahead == 0 and skip_today:
                ahead = 7
            return today + timedelta(days=ahead)
    return None


def parse_date(text: str, today: date, offered_dates: Optional[list[date]] = None) -> Optional[date]:
    """Parse a date reply relative to ``today``; None when it cannot be read.

    A literal date without a year that has already passed this year rolls
    over to next year. Range checks (past, booking window) are left to
    the caller.
    """
    cleaned = _clean_date_text(text)
    if not cleaned:
        return None

    if offered_dates:
        index = parse_ordinal(cleaned, len(offered_dates))
        if index is not None:
            return offered_dates[index]

    words = set(cleaned.split())
    if "day after tomorrow" in cleaned:
        return today + timedelta(days=2)
    if words.intersection(("tomorrow", "tmrw", "tomorow", "tommorow")):
        return today + timedelta(days=1)
    if words.intersection(("today", "tonight")):
        return today

    weekday = _weekday_date(cleaned, today)
    if weekday is not None:
        return weekday

    iso = _ISO_DATE.search(cleaned)
    if iso:
        try:
            return datetime.strptime(iso.group(1), "%Y-%m-%d").date()
        except ValueError:
            return None

    for fmt in DATE_FORMATS_WITH_YEAR:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    for fmt in DATE_FORMATS_WITHOUT_YEAR:
        try:
            parsed = datetime.strptime(f"{cleaned} {today.year}", f"{fmt} %Y").date()
        except ValueError:
            continue
        if parsed < today:
            try:
                parsed = parsed.replace(year=today.year + 1)
            except ValueError:
                return None
        return parsed
    return None


def _to_24h(hour: int, minute: int, period: Optional[str]) -> Optional[time]:
    if not 0 <= minute <= 59:
        return None
    if period is None:
        return time(hour, minute) if 0 <= hour <= 23 else None
    if not 1 <= hour <= 12:
        return None
    if period == "pm" and hour != 12:
        hour += 12
    elif period == "am" and hour == 12:
        hour = 0
    return time(hour, minute)


def parse_time(text: str, offered_times: Optional[list[time]] = None) -> Optional[time]:
    """Parse a time reply; a bare number is read only as a list position."""
    cleaned = normalize_text(text).replace("a.m.", "am").replace("p.m.", "pm")
    if not cleaned:
        return None

    if re.fullmatch(r"\d{1,3}[.)]?", cleaned):
        index = parse_ordinal(cleaned, len(offered_times or []))
        return offered_times[index] if index is not None else None

    match = _TIME_12H_WITH_MINUTES.search(cleaned)
    if match:
        return _to_24h(int(match.group(1)), int(match.group(2)), match.group(3))
    match = _TIME_12H.search(cleaned)
    if match:
        return _to_24h(int(match.group(1)), 0, match.group(2))
    match = _TIME_24H.search(cleaned)
    if match:
        return _to_24h(int(match.group(1)), int(match.group(2)), None)
    return None

"""
Natural-language date resolution for tool arguments.

`resolve_date` is total: every input yields a calendar date. Callers that need
stricter validation (e.g. "not in the past") check the returned value.
"""
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Riyadh"

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_RELATIVE_DAYS = {
    "today": 0,
    "tomorrow": 1,
    "day after tomorrow": 2,
}

# Scan order matters when a phrase names two weekdays; the first match wins.
_WEEKDAYS = (
    ("monday", 0),
    ("tuesday", 1),
    ("wednesday", 2),
    ("thursday", 3),
    ("friday", 4),
    ("saturday", 5),
    ("sunday", 6),
)


def today_in(timezone: str = DEFAULT_TIMEZONE) -> date:
    return datetime.now(ZoneInfo(timezone)).date()


def _reference_date(now: Union[date, datetime, None], timezone: str) -> date:
    if now is None:
        return today_in(timezone)
    if isinstance(now, datetime):
        if now.tzinfo is not None:
            return now.astimezone(ZoneInfo(timezone)).date()
        return now.date()
    return now


def resolve_date(expression: Optional[str], now: Union[date, datetime, None] = None,
                 timezone: str = DEFAULT_TIMEZONE) -> date:
    """
    Map a date expression to a calendar date relative to `now`.

    Precedence: exact keyword ("today", "tomorrow", "day after tomorrow"),
    strict ISO YYYY-MM-DD, weekday name (next occurrence strictly after today,
    one extra week when qualified by "next"), otherwise tomorrow.
    """
    today = _reference_date(now, timezone)
    if not isinstance(expression, str):
        return today + timedelta(days=1)

    raw = expression.strip()
    normalized = " ".join(raw.lower().split())

    if normalized in _RELATIVE_DAYS:
        return today + timedelta(days=_RELATIVE_DAYS[normalized])

    if _ISO_DATE.match(raw):
        try:
            return date.fromisoformat(raw)
        except ValueError:
            pass

    weekday = _find_weekday(normalized)
    if weekday is not None:
        start = today + timedelta(days=7) if "next" in normalized else today
        return _next_weekday_after(start, weekday)

    return today + timedelta(days=1)


def _find_weekday(text: str) -> Optional[int]:
    for name, index in _WEEKDAYS:
        if name in text:
            return index
    return None


def _next_weekday_after(start: date, weekday: int) -> date:
    candidate = start + timedelta(days=1)
    # start+1 .. start+7 covers every weekday, so six steps at most
    for _ in range(6):
        if candidate.weekday() == weekday:
            break
        candidate += timedelta(days=1)
    return candidate

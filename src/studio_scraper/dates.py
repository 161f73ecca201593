"""Date Format Resolver.

Booking platforms label their calendar controls and day sections in different
conventions: "07/25", "Fri, Jul 25", "Jul 25", a bare "25", or a long
"Friday, July 25, 2025". resolve_formats() derives every representation once
per call; all date matching (navigation, section validation, event headers)
consults the resulting DateFormatSet instead of formatting dates ad hoc.
"""

import re
from datetime import date, datetime, timedelta

from pydantic import BaseModel, ConfigDict

MONTH_ABBRS: tuple[str, ...] = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)
MONTH_NAMES: tuple[str, ...] = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)
_WEEKDAY_NAMES: tuple[str, ...] = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

_WHITESPACE_RE = re.compile(r"\s+")
_MONTH_DAY_RE = re.compile(
    r"\b(" + "|".join(MONTH_NAMES + ("sept",) + MONTH_ABBRS) + r")\b\.?\s+(\d{1,2})(?!\d)",
    re.IGNORECASE,
)
_NUMERIC_DATE_RE = re.compile(r"(?<!\d)(\d{1,2})/(\d{1,2})(?!\d)")
_ISO_DATE_RE = re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)")


def _normalize(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def _contains(haystack: str, needle: str) -> bool:
    """Case-insensitive containment that refuses to split a number ("7/25" in "7/251")."""
    pattern = r"(?<!\d)" + re.escape(needle) + r"(?!\d)"
    return re.search(pattern, haystack) is not None


class DateFormatSet(BaseModel):
    """Every textual representation of one target date.

    Derived from a single date by resolve_formats(); never stored.
    """

    model_config = ConfigDict(frozen=True)

    target: date
    numeric: str  # "07/25"
    numeric_unpadded: str  # "7/25"
    weekday_abbrev: str  # "Fri, Jul 25"
    month_day: str  # "Jul 25"
    month_day_long: str  # "July 25"
    day_only: str  # "25"
    locale_long: str  # "Friday, July 25, 2025"
    iso: str  # "2025-07-25"

    def variants(self) -> tuple[str, ...]:
        """Formats specific enough to identify the date on their own, most specific first."""
        return (
            self.iso,
            self.locale_long,
            self.weekday_abbrev,
            self.month_day_long,
            self.month_day,
            self.numeric,
            self.numeric_unpadded,
        )

    def matches(self, text: str | None) -> bool:
        """True when `text` names the target date in any full format."""
        if not text:
            return False
        normalized = _normalize(text)
        return any(_contains(normalized, v.lower()) for v in self.variants())

    def matches_day(self, text: str | None) -> bool:
        """Looser day-of-month match used on date-strip buttons ("25", "active-25")."""
        if not text:
            return False
        return _contains(_normalize(text), self.day_only)

    def names_other_date(self, text: str | None) -> bool:
        """True when `text` carries a recognizable date that is not the target.

        Used by section validation to reject candidates filed under another day.
        """
        if not text or self.matches(text):
            return False
        normalized = _normalize(text)
        for match in _ISO_DATE_RE.finditer(normalized):
            if match.group(0) != self.iso:
                return True
        for match in _MONTH_DAY_RE.finditer(normalized):
            month = MONTH_ABBRS.index(match.group(1)[:3].lower()) + 1
            if (month, int(match.group(2))) != (self.target.month, self.target.day):
                return True
        for match in _NUMERIC_DATE_RE.finditer(normalized):
            month, day = int(match.group(1)), int(match.group(2))
            if 1 <= month <= 12 and (month, day) != (self.target.month, self.target.day):
                return True
        return False


def parse_target_date(value: str | date) -> date:
    """Parse an ISO-8601 date (or datetime) string into a date.

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def resolve_formats(target: str | date) -> DateFormatSet:
    """Derive the DateFormatSet for a target date.

    Pure and deterministic: the same date always yields an equal set. Month
    and weekday names are always English, whatever the process locale.
    """
    day = parse_target_date(target)
    month_abbr = MONTH_ABBRS[day.month - 1].capitalize()
    month_name = MONTH_NAMES[day.month - 1].capitalize()
    weekday_name = _WEEKDAY_NAMES[day.weekday()]
    return DateFormatSet(
        target=day,
        numeric=f"{day.month:02d}/{day.day:02d}",
        numeric_unpadded=f"{day.month}/{day.day}",
        weekday_abbrev=f"{weekday_name[:3]}, {month_abbr} {day.day}",
        month_day=f"{month_abbr} {day.day}",
        month_day_long=f"{month_name} {day.day}",
        day_only=str(day.day),
        locale_long=f"{weekday_name}, {month_name} {day.day}, {day.year}",
        iso=day.isoformat(),
    )


def parse_header_date(text: str, today: date | None = None) -> date | None:
    """Parse a listing section header into a date.

    Handles "Today", "Tomorrow", ISO dates, "Sep 11", "Sun, Aug 10" and
    "September 11". Headers carry no year, so a month/day already in the past
    is taken to mean next year.

    Returns:
        The parsed date, or None when the header has no recognizable date.
    """
    if not text:
        return None
    today = today or date.today()
    normalized = _normalize(text)

    if normalized.startswith("today"):
        return today
    if normalized.startswith("tomorrow"):
        return today + timedelta(days=1)

    iso = _ISO_DATE_RE.search(normalized)
    if iso:
        try:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        except ValueError:
            return None

    match = _MONTH_DAY_RE.search(normalized)
    if not match:
        return None
    month = MONTH_ABBRS.index(match.group(1)[:3].lower()) + 1
    try:
        candidate = date(today.year, month, int(match.group(2)))
    except ValueError:
        return None
    if candidate < today:
        try:
            candidate = candidate.replace(year=today.year + 1)
        except ValueError:
            return None
    return candidate

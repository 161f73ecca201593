"""Normalizer/Classifier.

Turns the free text pulled off a booking page into typed record fields. Every
function here is pure and total: a missing pattern yields None (or the
documented default), never an exception.
"""

import re
from decimal import Decimal, InvalidOperation

from src.studio_scraper.models import (
    DifficultyTier,
    ExtractedFields,
    ScrapedClassRecord,
)

_DURATION_RE = re.compile(r"(\d+)")
_PRICE_RE = re.compile(r"\$?(\d+(?:\.\d+)?)")
# A clock time needs a colon or an am/pm marker; bare numbers are room or counter labels
_TIME = r"\d{1,2}:\d{2}(?:\s*[ap]\.?m\.?(?![a-z]))?|\d{1,2}\s*[ap]\.?m\.?(?![a-z])"
_TIME_RE = re.compile(_TIME, re.IGNORECASE)
# The start may drop its marker ("7-8pm") when the end carries one
_TIME_RANGE_RE = re.compile(
    rf"((?:{_TIME})|\d{{1,2}})\s*(?:-|–|—|to)\s*((?:{_TIME}))",
    re.IGNORECASE,
)

# Emoji and pictographic symbol ranges; several platforms decorate titles with them
_PICTOGRAPH_RE = re.compile(
    "["
    "\U0001F300-\U0001F5FF"
    "\U0001F600-\U0001F64F"
    "\U0001F680-\U0001F6FF"
    "\U0001F900-\U0001F9FF"
    "\U0001FA70-\U0001FAFF"
    "\U0001F1E0-\U0001F1FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "\u2B00-\u2BFF"
    "\uFE0F"
    "\u200D"
    "]+"
)
_LEADING_COUNTER_RE = re.compile(r"^\d+\s*[-–]\s*")
_EMPTY_PARENS_RE = re.compile(r"\(\s*\)|\[\s*\]")
_WHITESPACE_RE = re.compile(r"\s+")

_DIFFICULTY_KEYWORDS: tuple[tuple[tuple[str, ...], DifficultyTier], ...] = (
    (("beginner", "starter"), "beginner"),
    (("advanced",), "advanced"),
    (("intermediate",), "intermediate"),
)

CLASS_TYPES: tuple[str, ...] = ("pilates", "yoga", "cardio", "strength", "core")
DEFAULT_CLASS_TYPE = "fitness"


def parse_duration(text: str | None) -> int | None:
    """First integer in the duration text, read as minutes ("(50 min)" -> 50)."""
    if not text:
        return None
    match = _DURATION_RE.search(text)
    return int(match.group(1)) if match else None


def parse_price(text: str | None) -> Decimal | None:
    """First "$12" / "12.50" amount in the text."""
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if not match:
        return None
    try:
        return Decimal(match.group(1))
    except InvalidOperation:
        return None


def classify_difficulty(text: str | None) -> DifficultyTier:
    lowered = (text or "").lower()
    for keywords, tier in _DIFFICULTY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return tier
    return "intermediate"


def classify_class_type(text: str | None) -> str:
    lowered = (text or "").lower()
    for class_type in CLASS_TYPES:
        if class_type in lowered:
            return class_type
    return DEFAULT_CLASS_TYPE


def split_time_range(text: str | None) -> tuple[str | None, str | None]:
    """Split "7:00 AM - 7:50 AM" into start and end; a single time has no end."""
    if not text:
        return None, None
    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    match = _TIME_RANGE_RE.search(cleaned)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    single = _TIME_RE.search(cleaned)
    if single:
        return single.group(0).strip(), None
    return None, None


def clean_name(name: str | None, duration_text: str | None = None) -> str:
    """Strip pictographs, an embedded duration and a leading "12 - " counter.

    "Sculpt (50 min)" with duration "(50 min)" becomes "Sculpt".
    """
    if not name:
        return ""
    cleaned = _PICTOGRAPH_RE.sub("", name)
    if duration_text and duration_text.strip():
        cleaned = cleaned.replace(duration_text.strip(), "")
    cleaned = _LEADING_COUNTER_RE.sub("", cleaned.strip())
    cleaned = _EMPTY_PARENS_RE.sub("", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip(" -–|·")


def build_record(
    fields: ExtractedFields,
    index: int,
    strategy_label: str,
    run_id: str,
) -> ScrapedClassRecord:
    """Turn one candidate's raw field texts into a ScrapedClassRecord."""
    name = clean_name(fields.name, fields.duration) or f"Class {index + 1}"
    start_time, end_time = split_time_range(fields.time)
    location = (fields.location or "").strip() or None
    description = f"{name} class" + (f" at {location}" if location else "")
    classify_text = " ".join(filter(None, [name, fields.name]))

    return ScrapedClassRecord(
        id=f"{strategy_label}-{run_id}-{index}",
        name=name,
        description=description,
        duration_minutes=parse_duration(fields.duration),
        difficulty_tier=classify_difficulty(classify_text),
        class_type=classify_class_type(classify_text),
        price=parse_price(fields.price),
        start_time=start_time,
        end_time=end_time,
        instructor=(fields.instructor or "").strip() or None,
        location=location,
        source_strategy=strategy_label,
    )

"""Pydantic models for venue input, session candidates and scraped records.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Everything here is created fresh per scrape call and discarded when it returns.
"""

from datetime import date
from decimal import Decimal
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

DifficultyTier = Literal["beginner", "intermediate", "advanced"]
ResultSource = Literal["web_scraping", "database"]


class VenueDescriptor(BaseModel):
    """Caller-supplied identity of a booking site.

    The physical address is optional; when present it selects one branch of a
    booking page that serves several locations.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    booking_url: str = Field(alias="bookingUrl")
    physical_address: str | None = Field(default=None, alias="physicalAddress")


class StructuredCandidate(BaseModel):
    """Snapshot of one in-page session element.

    `probes` maps each cascade selector that matched inside the element to the
    trimmed text it produced, so field extraction runs in Python against a
    plain dict instead of live element handles.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["structured"] = "structured"
    probes: dict[str, str] = Field(default_factory=dict)
    text: str = ""  # Full textContent of the element
    lines: list[str] = Field(default_factory=list)  # Visible text lines, in order
    date_context: str | None = None  # Text of the nearest enclosing date header
    scoped: bool = False  # True when date navigation already selected the day


class TextMatchCandidate(BaseModel):
    """Candidate built from one regex match against a captured page-text block."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text_match"] = "text_match"
    time: str = ""
    name: str = ""
    instructor: str = ""
    duration: str = ""
    location: str = ""
    raw: str = ""  # The full matched line
    scoped: bool = False


Candidate = Union[StructuredCandidate, TextMatchCandidate]


class ExtractedFields(BaseModel):
    """Raw field texts for one candidate after the selector cascade."""

    name: str | None = None
    time: str | None = None
    instructor: str | None = None
    duration: str | None = None
    location: str | None = None
    price: str | None = None


class ScrapedClassRecord(BaseModel):
    """A single normalized class session, the engine's caller-facing artifact."""

    model_config = ConfigDict(frozen=True)

    id: str  # "<strategy>-<run id>-<index>"
    name: str
    description: str
    duration_minutes: int | None = None  # From "(50 min)", "50 minutes", ...
    difficulty_tier: DifficultyTier | None = None
    class_type: str | None = None  # pilates, yoga, cardio, strength, core, fitness
    max_capacity: int | None = None
    price: Decimal | None = None
    start_time: str | None = None  # As displayed, e.g. "7:00 AM"
    end_time: str | None = None
    instructor: str | None = None
    location: str | None = None  # Room/branch label when the page shows one
    is_available: bool = True
    total_booked: int = 0
    source_strategy: str  # "mariana", "universal", ...


class ScrapeResponse(BaseModel):
    """Envelope returned to the HTTP layer for one schedule request."""

    success: bool = True
    data: list[ScrapedClassRecord] = Field(default_factory=list)
    count: int = 0
    source: ResultSource = "web_scraping"
    message: str | None = None  # Set when data is empty


class ScrapedEvent(BaseModel):
    """One event discovered on a multi-day event listing page."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    location: str = "Location TBD"
    event_date: date
    time: str | None = None
    category: str
    organizer: str | None = None
    image_url: str | None = None
    event_url: str | None = None
    source_id: str  # "<slugified name>-<YYYY-MM-DD>", used for deduplication
    tags: list[str] = Field(default_factory=list)

"""Browser-driven class schedule extraction for fitness studio booking sites.

Given a venue's booking URL and a target date, ScheduleExtractor returns the
normalized class sessions for that date, or an empty list when the page
cannot be read. EventDiscovery does the same for multi-day event listings.
"""

from src.studio_scraper.engine import EventDiscovery, EventSource, ScheduleExtractor
from src.studio_scraper.models import (
    ScrapedClassRecord,
    ScrapedEvent,
    ScrapeResponse,
    VenueDescriptor,
)
from src.studio_scraper.strategy import select_strategy

__all__ = [
    "ScheduleExtractor",
    "EventDiscovery",
    "EventSource",
    "VenueDescriptor",
    "ScrapedClassRecord",
    "ScrapedEvent",
    "ScrapeResponse",
    "select_strategy",
]

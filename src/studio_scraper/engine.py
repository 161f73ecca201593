"""Extraction engine entry points and the timeout/fault wrapper.

ScheduleExtractor.scrape_classes() is the whole contract: a venue and a
target date in, a (possibly empty) list of ScrapedClassRecord out. The
pipeline runs against a hard deadline and every failure, including the
deadline itself, is logged and turned into an empty list. An empty list
means "could not extract", not "no classes".
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import date

from src.studio_scraper.config import ScraperConfig, get_config
from src.studio_scraper.dates import DateFormatSet, resolve_formats
from src.studio_scraper.errors import (
    GlobalTimeoutError,
    NavigationTimeoutError,
    NoCandidatesFoundError,
    ScrapingError,
    UnsupportedPlatformError,
)
from src.studio_scraper.logging import bind_scrape_context, get_logger
from src.studio_scraper.models import (
    ScrapedClassRecord,
    ScrapedEvent,
    ScrapeResponse,
    VenueDescriptor,
)
from src.studio_scraper.normalize import build_record
from src.studio_scraper.pages.events import EventListingPage
from src.studio_scraper.session import BrowserSessionManager
from src.studio_scraper.strategy import (
    ExtractionStrategy,
    Unsupported,
    select_strategy,
)

log = get_logger(__name__)

EMPTY_MESSAGE = "No classes available for the selected date"

FallbackProvider = Callable[[VenueDescriptor, date], Awaitable[list[ScrapedClassRecord]]]


def _run_id() -> str:
    return str(int(time.time() * 1000))


class ScheduleExtractor:
    """Fail-soft schedule extraction for one venue and date per call.

    Calls are independent: each acquires and releases its own browser
    session, so several may run concurrently.
    """

    def __init__(
        self,
        config: ScraperConfig | None = None,
        session_manager: BrowserSessionManager | None = None,
    ) -> None:
        self.config = config or get_config()
        self.session_manager = session_manager or BrowserSessionManager(self.config)

    async def scrape_classes(
        self,
        venue: VenueDescriptor,
        target_date: str | date,
        *,
        allow_unscoped_dates: bool | None = None,
    ) -> list[ScrapedClassRecord]:
        """Extract the venue's classes on `target_date`. Never raises.

        Args:
            venue: Booking site and optional branch address.
            target_date: ISO-8601 date string or date.
            allow_unscoped_dates: Keep candidates when the page carries no date
                signal at all. Defaults to the configured policy.
        """
        try:
            formats = resolve_formats(target_date)
        except (TypeError, ValueError) as e:
            log.warning("invalid_target_date", target_date=str(target_date), error=str(e))
            return []

        strategy = select_strategy(venue)
        allow = (
            self.config.allow_unscoped_dates
            if allow_unscoped_dates is None
            else allow_unscoped_dates
        )
        deadline = self.config.schedule_timeout_seconds

        with bind_scrape_context(
            venue=venue.name or venue.booking_url,
            target_date=formats.iso,
            strategy=strategy.label,
        ):
            try:
                if isinstance(strategy, Unsupported):
                    raise UnsupportedPlatformError(strategy.platform, venue.booking_url)
                return await asyncio.wait_for(
                    self._extract(venue, formats, strategy, allow), timeout=deadline
                )
            except asyncio.TimeoutError:
                log.warning("scrape_timeout", error=str(GlobalTimeoutError(deadline)))
            except UnsupportedPlatformError as e:
                log.info("platform_unsupported", platform=e.platform, url=e.url)
            except NoCandidatesFoundError as e:
                log.info(
                    "no_candidates_found",
                    selectors_tried=e.selectors_tried,
                    elements_seen=e.elements_seen,
                    text_length=e.text_length,
                )
            except ScrapingError as e:
                log.warning("scrape_failed", error=str(e), type=type(e).__name__)
            except Exception as e:
                log.error("scrape_error", error=str(e), type=type(e).__name__)
            return []

    async def _extract(
        self,
        venue: VenueDescriptor,
        formats: DateFormatSet,
        strategy: ExtractionStrategy,
        allow_unscoped: bool,
    ) -> list[ScrapedClassRecord]:
        async with self.session_manager.acquire() as session:
            page = await session.new_page()
            handler = strategy.handler(page, self.config)
            try:
                await handler.navigate(venue.booking_url)
            except NavigationTimeoutError as e:
                # Whatever rendered before the timeout may still hold the schedule
                log.warning("navigation_degraded", url=e.url, timeout_ms=e.timeout_ms)
            fields = await handler.extract(venue, formats, allow_unscoped=allow_unscoped)

        run_id = _run_id()
        return [
            build_record(f, index, strategy.label, run_id)
            for index, f in enumerate(fields)
        ]

    async def scrape_venues(
        self, venues: Sequence[VenueDescriptor], target_date: str | date
    ) -> list[list[ScrapedClassRecord]]:
        """Scrape several venues concurrently, one browser session each."""
        return list(
            await asyncio.gather(*(self.scrape_classes(v, target_date) for v in venues))
        )

    async def scrape_response(
        self,
        venue: VenueDescriptor,
        target_date: str | date,
        *,
        fallback: FallbackProvider | None = None,
    ) -> ScrapeResponse:
        """Build the HTTP-facing envelope, consulting a persisted fallback when empty.

        The fallback is an external collaborator (a database read); its failures
        are logged and treated as "no data".
        """
        records = await self.scrape_classes(venue, target_date)
        source = "web_scraping"

        if not records and fallback is not None:
            try:
                records = list(await fallback(venue, resolve_formats(target_date).target))
                source = "database"
            except Exception as e:
                log.warning("fallback_failed", error=str(e), type=type(e).__name__)
                records = []

        return ScrapeResponse(
            success=True,
            data=records,
            count=len(records),
            source=source,
            message=None if records else EMPTY_MESSAGE,
        )


@dataclass(frozen=True)
class EventSource:
    """One listing page to discover events on."""

    url: str
    category: str


class EventDiscovery:
    """Multi-page event discovery under the longer event deadline.

    All pages of one discover() call share that call's single browser session.
    """

    def __init__(
        self,
        config: ScraperConfig | None = None,
        session_manager: BrowserSessionManager | None = None,
    ) -> None:
        self.config = config or get_config()
        self.session_manager = session_manager or BrowserSessionManager(self.config)

    async def discover(self, sources: Sequence[EventSource]) -> list[ScrapedEvent]:
        """Scrape every source page. Never raises; returns [] on deadline or failure."""
        deadline = self.config.event_timeout_seconds
        try:
            return await asyncio.wait_for(self._discover(sources), timeout=deadline)
        except asyncio.TimeoutError:
            log.warning("event_discovery_timeout", error=str(GlobalTimeoutError(deadline)))
        except Exception as e:
            log.error("event_discovery_error", error=str(e), type=type(e).__name__)
        return []

    async def _discover(self, sources: Sequence[EventSource]) -> list[ScrapedEvent]:
        events: list[ScrapedEvent] = []
        run_id = _run_id()
        async with self.session_manager.acquire() as session:
            for source in sources:
                page = await session.new_page()
                listing = EventListingPage(page, self.config)
                try:
                    await listing.navigate(source.url)
                    events += await listing.extract(source.category, run_id)
                except Exception as e:
                    # One broken listing must not discard the other sources
                    log.warning(
                        "event_source_failed",
                        url=source.url,
                        error=str(e),
                        type=type(e).__name__,
                    )
        log.info("event_discovery_complete", sources=len(sources), events=len(events))
        return events

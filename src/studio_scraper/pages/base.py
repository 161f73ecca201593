"""SchedulePage - the extraction pipeline shared by every booking platform.

A handler owns one live page for one call and runs the steps in a fixed
order: navigate, prepare, date navigation, wait for the schedule, optional
location pre-filter, candidate collection (text fallback when nothing
structured exists), date-section validation, field cascade, post-filter.

Platform handlers subclass SchedulePage and override selectors and the
prepare/wait_for_schedule hooks; they never reorder the steps.
"""

import asyncio
from collections.abc import Mapping, Sequence

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.studio_scraper.cascade import (
    GENERIC_DATE_HEADER_SELECTORS,
    build_cascade,
    build_text_candidates,
    collect_candidates,
    run_cascade,
    validate_date_scope,
)
from src.studio_scraper.config import ScraperConfig
from src.studio_scraper.dates import DateFormatSet
from src.studio_scraper.errors import NavigationTimeoutError, NoCandidatesFoundError
from src.studio_scraper.location import LocationControl, apply_prefilter
from src.studio_scraper.logging import get_logger
from src.studio_scraper.models import Candidate, ExtractedFields, VenueDescriptor
from src.studio_scraper.navigator import navigate_to_date
from src.studio_scraper.session import PageLike

log = get_logger(__name__)


class SchedulePage:
    """Schedule handler base: selectors are empty, subclasses fill them in."""

    platform = "universal"

    CONTAINER_SELECTORS: tuple[str, ...] = ()
    FIELD_SELECTORS: Mapping[str, Sequence[str]] = {}
    DATE_SELECTORS: tuple[str, ...] = ()
    DATE_HEADER_SELECTORS: tuple[str, ...] = GENERIC_DATE_HEADER_SELECTORS
    LOCATION_CONTROL: LocationControl | None = None
    GENERIC_DATE_FALLBACK = True

    def __init__(self, page: PageLike, config: ScraperConfig) -> None:
        self.page = page
        self.config = config

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(0.5),
        retry=retry_if_exception_type(NavigationTimeoutError),
        reraise=True,
    )
    async def navigate(self, url: str) -> None:
        """Open the booking page.

        Retries once on timeout.

        Raises:
            NavigationTimeoutError: If the page never reached DOMContentLoaded.
        """
        timeout_ms = self.config.navigation_timeout_ms
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            log.warning("navigation_timeout", url=url, timeout_ms=timeout_ms)
            raise NavigationTimeoutError(url, timeout_ms) from e
        log.info("schedule_page_navigated", url=url, platform=self.platform)

    async def prepare(self) -> None:
        await asyncio.sleep(self.config.initial_settle_seconds)

    async def wait_for_schedule(self) -> bool:
        """Return False when the platform's schedule never rendered."""
        return True

    async def extract(
        self,
        venue: VenueDescriptor,
        formats: DateFormatSet,
        *,
        allow_unscoped: bool,
    ) -> list[ExtractedFields]:
        """Run the extraction steps against the already-navigated page.

        Raises:
            NoCandidatesFoundError: When neither structured elements nor the
                text fallback produced a single candidate.
        """
        await self.prepare()

        outcome = await navigate_to_date(
            self.page,
            formats,
            platform_selectors=self.DATE_SELECTORS,
            generic=self.GENERIC_DATE_FALLBACK,
            settle_seconds=self.config.date_settle_seconds,
        )

        if not await self.wait_for_schedule():
            raise NoCandidatesFoundError(
                list(self.CONTAINER_SELECTORS),
                text_length=len(outcome.captured_text),
            )

        prefiltered = False
        if self.LOCATION_CONTROL is not None and venue.physical_address:
            prefiltered = await apply_prefilter(
                self.page,
                venue.physical_address,
                self.LOCATION_CONTROL,
                settle_seconds=self.config.filter_settle_seconds,
            )

        cascade = build_cascade(self.FIELD_SELECTORS)
        collected = await collect_candidates(
            self.page,
            self.CONTAINER_SELECTORS,
            cascade,
            header_selectors=self.DATE_HEADER_SELECTORS,
            scoped=outcome.matched,
        )
        candidates: list[Candidate] = list(collected.candidates)

        if not candidates and outcome.captured_text:
            candidates = list(
                build_text_candidates(outcome.captured_text, scoped=outcome.matched)
            )
            log.info(
                "text_fallback_used",
                candidates=len(candidates),
                text_length=len(outcome.captured_text),
            )

        if not candidates:
            raise NoCandidatesFoundError(
                list(collected.selectors_tried),
                elements_seen=collected.elements_seen,
                text_length=len(outcome.captured_text),
            )

        in_scope = validate_date_scope(candidates, formats, allow_unscoped=allow_unscoped)
        # The dropdown narrows rooms, not branches, on some platforms; labels are rechecked
        fields = run_cascade(in_scope, cascade, address=venue.physical_address)
        log.info(
            "schedule_extracted",
            platform=self.platform,
            candidates=len(candidates),
            in_scope=len(in_scope),
            classes=len(fields),
            date_matched=outcome.matched,
            prefiltered=prefiltered,
        )
        return fields

"""MarianaSchedulePage - daily schedule table of *.marianaiframes.com embeds.

DOM structure (iframe schedule, daily view):
  button[data-test-date-button] -> one per day in the date strip
  button[data-test-dropdown-button="rooms"] -> room/branch filter dropdown
    li > input[type=checkbox] + label text per room ("Flatiron", "Ride", ...)
  table[data-test-table="schedule"]
    tr[data-test-row="table-row"] per class
      td:first-child -> p.BoldLabel (time), p.StyledMeta (duration),
                        p.StyledLocationData (location)
      button[data-test-button*="class-details"] -> class name
      button[data-test-button*="instructor-details"] -> instructor
      td:last-child p -> studio/room type

The table renders asynchronously after the date button is clicked, so the
handler polls for it before extraction.
"""

import asyncio

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.studio_scraper.location import LocationControl
from src.studio_scraper.logging import get_logger
from src.studio_scraper.pages.base import SchedulePage

log = get_logger(__name__)

_TABLE_READY_JS = """([tableSelector, rowSelector]) => {
    return document.querySelector(tableSelector) !== null
        && document.querySelectorAll(rowSelector).length > 0;
}"""


class MarianaSchedulePage(SchedulePage):
    """Mariana Tek iframe schedule."""

    platform = "mariana"

    SCHEDULE_TABLE = 'table[data-test-table="schedule"]'
    SCHEDULE_ROW = 'tr[data-test-row="table-row"]'

    CONTAINER_SELECTORS = (
        'table[data-test-table="schedule"] tr[data-test-row="table-row"]',
        'tr[data-test-row="table-row"]',
        "tr[data-test-row]",
        "tbody tr",
        "table tr",
    )
    FIELD_SELECTORS = {
        "time": (
            "td:first-child p.BoldLabel-sc-ha1dsk",
            "td:first-child p:first-child",
        ),
        "duration": (
            "td:first-child p.LineItem-sc-kwjy1o.StyledMeta-sc-1tw3zxx",
            "td:first-child p:nth-child(2)",
        ),
        "location": (
            "td:first-child p.LineItem-sc-kwjy1o.StyledLocationData-sc-1999s1s",
            "td:first-child p:nth-child(3)",
            "td:last-child p",
            "td:nth-child(2) p:last-child",
        ),
        "name": (
            'button[data-test-button*="class-details"] .ButtonLabel-sc-vvc4oq',
            'button[data-test-button*="class-details"] span',
        ),
        "instructor": (
            'button[data-test-button*="instructor-details"] .ButtonLabel-sc-vvc4oq',
            'button[data-test-button*="instructor-details"] span',
        ),
    }
    DATE_SELECTORS = ("button[data-test-date-button]",)
    GENERIC_DATE_FALLBACK = False
    LOCATION_CONTROL = LocationControl(
        button_selector='button[data-test-dropdown-button="rooms"][aria-label="Filter Button"]',
        option_selector='input[type="checkbox"]',
        label_container="li, div, label",
    )

    async def prepare(self) -> None:
        await super().prepare()
        # Filter buttons collapse into a menu below desktop widths
        await self.page.set_viewport_size(
            {"width": self.config.viewport_width, "height": self.config.viewport_height}
        )

    async def wait_for_schedule(self) -> bool:
        try:
            await self.page.wait_for_selector(
                self.SCHEDULE_TABLE, timeout=self.config.selector_timeout_ms
            )
        except PlaywrightTimeoutError:
            log.debug("schedule_table_selector_timeout", selector=self.SCHEDULE_TABLE)

        # Rows arrive after the table shell
        for attempt in range(self.config.table_wait_attempts):
            await asyncio.sleep(self.config.table_poll_seconds)
            ready = await self.page.evaluate(
                _TABLE_READY_JS, [self.SCHEDULE_TABLE, self.SCHEDULE_ROW]
            )
            if ready:
                log.debug("schedule_table_ready", attempts=attempt + 1)
                return True
        log.info(
            "schedule_table_missing",
            attempts=self.config.table_wait_attempts,
            selector=self.SCHEDULE_TABLE,
        )
        return False

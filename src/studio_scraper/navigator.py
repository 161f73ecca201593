"""Date Navigator.

Finds the calendar control for the target date on a live page and activates
it. Platform date-strip selectors are tried first and may match on the bare
day of month ("25"); generic selectors must match one of the full formats of
the DateFormatSet. When nothing matches, the navigator logs and leaves the
page on whatever day it rendered: downstream date-section validation decides
what to keep.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from src.studio_scraper.dates import DateFormatSet
from src.studio_scraper.errors import DateNotFoundError
from src.studio_scraper.logging import get_logger
from src.studio_scraper.session import PageLike

log = get_logger(__name__)

GENERIC_DATE_SELECTORS: tuple[str, ...] = (
    "[data-date]",
    'button[class*="date"]',
    '[class*="date"] button',
    'button[class*="day"]',
    '[class*="day"] button',
    '[class*="calendar"] button',
    '[role="tab"]',
    ".date",
    ".day",
)

MAX_CAPTURED_TEXT = 50_000

_LIST_DATE_ELEMENTS_JS = """(selectors) => {
    const seen = new Set();
    const out = [];
    for (const selector of selectors) {
        let found = [];
        try { found = document.querySelectorAll(selector); } catch (e) { continue; }
        Array.from(found).forEach((el, position) => {
            if (seen.has(el)) return;
            seen.add(el);
            const attrs = Array.from(el.attributes)
                .filter((a) => a.name.startsWith('data-') || a.name === 'aria-label' || a.name === 'datetime')
                .map((a) => a.value)
                .join(' ');
            out.push({
                selector,
                position,
                text: (el.textContent || '').replace(/\\s+/g, ' ').trim(),
                attrs,
            });
        });
    }
    return out;
}"""

_ACTIVATE_JS = """([selector, position]) => {
    const el = document.querySelectorAll(selector)[position];
    if (!el) return false;
    el.scrollIntoView({ block: 'center' });
    el.click();
    return true;
}"""

_CAPTURE_TEXT_JS = """(limit) => {
    const text = (document.body && (document.body.innerText || document.body.textContent)) || '';
    return text.slice(0, limit);
}"""


@dataclass(frozen=True)
class NavigationOutcome:
    """What date navigation achieved on the page."""

    matched: bool
    matched_text: str | None = None
    selector: str | None = None
    elements_seen: int = 0
    captured_text: str = ""


def find_date_control(
    elements: Sequence[dict[str, Any]],
    formats: DateFormatSet,
    day_only_selectors: Sequence[str] = (),
) -> dict[str, Any] | None:
    """Pick the element to activate from the in-page date element listing.

    Full-format matches anywhere win over day-only matches, which are only
    accepted on platform date-strip selectors.
    """
    for element in elements:
        if formats.matches(element.get("text")) or formats.matches(element.get("attrs")):
            return element
    for element in elements:
        if element.get("selector") not in day_only_selectors:
            continue
        if formats.matches_day(element.get("attrs")) or formats.matches_day(element.get("text")):
            return element
    return None


async def _activate_date(
    page: PageLike,
    formats: DateFormatSet,
    selectors: Sequence[str],
    day_only_selectors: Sequence[str],
) -> tuple[dict[str, Any], int]:
    elements: list[dict[str, Any]] = await page.evaluate(
        _LIST_DATE_ELEMENTS_JS, list(selectors)
    ) or []
    element = find_date_control(elements, formats, day_only_selectors)
    if element is None:
        raise DateNotFoundError(formats.iso, len(elements))
    clicked = await page.evaluate(_ACTIVATE_JS, [element["selector"], element["position"]])
    if not clicked:
        raise DateNotFoundError(formats.iso, len(elements))
    return element, len(elements)


async def capture_page_text(page: PageLike) -> str:
    try:
        return await page.evaluate(_CAPTURE_TEXT_JS, MAX_CAPTURED_TEXT) or ""
    except Exception as e:
        log.debug("page_text_capture_failed", error=str(e))
        return ""


async def navigate_to_date(
    page: PageLike,
    formats: DateFormatSet,
    *,
    platform_selectors: Sequence[str] = (),
    generic: bool = True,
    settle_seconds: float = 0.75,
) -> NavigationOutcome:
    """Activate the calendar control for the target date, if one can be found.

    Args:
        page: Live page.
        formats: Representations of the target date.
        platform_selectors: Date-strip selectors of the platform; tried first and
            allowed to match on the bare day of month.
        generic: Also try the generic date/day selectors.
        settle_seconds: Pause after activation so the schedule can re-render.

    Returns:
        NavigationOutcome; `matched` is False when the page was left as rendered.
    """
    selectors = list(platform_selectors)
    if generic:
        selectors += [s for s in GENERIC_DATE_SELECTORS if s not in selectors]

    try:
        element, seen = await _activate_date(page, formats, selectors, platform_selectors)
    except DateNotFoundError as e:
        log.info(
            "date_not_found",
            target=formats.iso,
            elements_seen=e.elements_seen,
            selectors=len(selectors),
        )
        return NavigationOutcome(
            matched=False,
            elements_seen=e.elements_seen,
            captured_text=await capture_page_text(page),
        )
    except Exception as e:
        log.warning("date_navigation_failed", error=str(e), type=type(e).__name__)
        return NavigationOutcome(matched=False, captured_text=await capture_page_text(page))

    await asyncio.sleep(settle_seconds)
    log.info(
        "date_activated",
        target=formats.iso,
        selector=element["selector"],
        text=element.get("text"),
    )
    return NavigationOutcome(
        matched=True,
        matched_text=element.get("text") or element.get("attrs"),
        selector=element["selector"],
        elements_seen=seen,
        captured_text=await capture_page_text(page),
    )

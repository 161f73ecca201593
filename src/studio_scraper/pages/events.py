"""EventListingPage - multi-day event timelines (lu.ma style discovery pages).

DOM structure:
  .timeline
    .timeline-section
      .timeline-title.date-title -> [class*="date"] ("Today", "Tomorrow", "Sep 11")
                                    [class*="weekday"]
      .card-wrapper per event
        h3 / [class*="title"]          -> event name
        [class*="event-time"] span     -> start time
        [class*="attribute"]:has(svg)  -> location (".text-ellipses")
        [class*="attribute"]           -> "By <organizer>"
        img                            -> cover image
        a[href]                        -> event page

Listings lazy-load as the page scrolls, so the handler scrolls until the page
height stops growing (bounded by event_scroll_attempts) before reading cards.
"""

import asyncio
import re
from datetime import date
from typing import Any

from src.studio_scraper.config import ScraperConfig
from src.studio_scraper.dates import parse_header_date
from src.studio_scraper.logging import get_logger
from src.studio_scraper.models import ScrapedEvent
from src.studio_scraper.normalize import clean_name
from src.studio_scraper.session import PageLike

log = get_logger(__name__)

_PAGE_HEIGHT_JS = """() => Math.max(
    document.body.scrollHeight,
    document.body.offsetHeight,
    document.documentElement.clientHeight,
    document.documentElement.scrollHeight,
    document.documentElement.offsetHeight
)"""

_SCROLL_JS = """() => {
    const step = window.innerHeight * 0.8;
    for (let y = 0; y < document.body.scrollHeight; y += step) {
        window.scrollTo(0, y);
    }
    window.scrollTo(0, document.body.scrollHeight);
}"""

_READ_CARDS_JS = """() => {
    const clean = (s) => (s || '').replace(/\\s+/g, ' ').trim();
    const root = document.querySelector('.timeline') || document.body;
    const headerSel = '[class*="date-title"], [class*="timeline-title"]';
    const headerText = (card) => {
        for (let node = card; node && node !== root; node = node.parentElement) {
            for (let sib = node.previousElementSibling; sib; sib = sib.previousElementSibling) {
                const header = sib.matches(headerSel) ? sib : sib.querySelector(headerSel);
                if (header) {
                    const dateEl = header.querySelector('[class*="date"]') || header;
                    return clean(dateEl.textContent);
                }
            }
        }
        return null;
    };
    return Array.from(root.querySelectorAll('.card-wrapper, [class*="event-card"]')).map((card) => {
        const link = card.querySelector('a[href]');
        const title = card.querySelector('h3, h2, h1, [class*="title"]');
        const time = card.querySelector('[class*="event-time"] span, [class*="time"]');
        const locationAttr = card.querySelector('[class*="attribute"]:has(svg) .text-ellipses, [class*="location"], [class*="address"]');
        const organizerAttr = card.querySelector('[class*="attribute"]:has(.text-ellipses), [class*="organizer"]');
        const image = card.querySelector('img');
        return {
            name: clean(title && title.textContent),
            time: clean(time && time.textContent),
            location: clean(locationAttr && locationAttr.textContent),
            organizer: clean(organizerAttr && organizerAttr.textContent),
            image_url: image ? image.src : null,
            event_url: link ? link.href : null,
            header: headerText(card),
        };
    });
}"""

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_ORGANIZER_RE = re.compile(r"^By\s+(.+)$", re.IGNORECASE)


def slugify(text: str) -> str:
    return _SLUG_RE.sub("-", text.lower()).strip("-")


def build_events(
    cards: list[dict[str, Any]],
    category: str,
    run_id: str,
    *,
    today: date | None = None,
) -> list[ScrapedEvent]:
    """Turn raw card snapshots into deduplicated ScrapedEvents.

    Cards whose section header has no recognizable date are dated today.
    Titles of three characters or fewer (after emoji stripping) are dropped.
    """
    today = today or date.today()
    events: dict[str, ScrapedEvent] = {}
    for card in cards:
        name = clean_name(card.get("name"))
        if len(name) <= 3:
            continue
        event_date = parse_header_date(card.get("header") or "", today) or today
        source_id = f"{slugify(name)}-{event_date.isoformat()}"
        if source_id in events:
            log.debug("duplicate_event_dropped", source_id=source_id)
            continue

        organizer = card.get("organizer") or ""
        match = _ORGANIZER_RE.match(organizer)
        if match:
            organizer = match.group(1)

        events[source_id] = ScrapedEvent(
            id=f"event-{category}-{run_id}-{len(events)}",
            name=name,
            description=f"{name} - {category} event",
            location=card.get("location") or "Location TBD",
            event_date=event_date,
            time=card.get("time") or None,
            category=category,
            organizer=organizer or None,
            image_url=card.get("image_url") or None,
            event_url=card.get("event_url") or None,
            source_id=source_id,
            tags=[category],
        )
    return list(events.values())


class EventListingPage:
    """One event listing page, scrolled to the end and read card by card."""

    def __init__(self, page: PageLike, config: ScraperConfig) -> None:
        self.page = page
        self.config = config

    async def navigate(self, url: str) -> None:
        await self.page.goto(url, wait_until="networkidle", timeout=60000)
        log.info("event_page_navigated", url=url)

    async def load_all(self) -> int:
        """Scroll until the page height stops growing. Returns rounds scrolled."""
        height = 0
        for attempt in range(self.config.event_scroll_attempts):
            previous = height
            await self.page.evaluate(_SCROLL_JS)
            await asyncio.sleep(self.config.event_scroll_pause_seconds)
            height = await self.page.evaluate(_PAGE_HEIGHT_JS) or 0
            if height <= previous:
                log.debug("event_scroll_settled", rounds=attempt + 1, height=height)
                return attempt + 1
        return self.config.event_scroll_attempts

    async def extract(self, category: str, run_id: str) -> list[ScrapedEvent]:
        await self.load_all()
        cards = await self.page.evaluate(_READ_CARDS_JS) or []
        events = build_events(cards, category, run_id)
        log.info("events_extracted", category=category, cards=len(cards), events=len(events))
        return events

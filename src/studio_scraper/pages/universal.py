"""UniversalSchedulePage - heuristic extraction for unrecognized booking sites.

Container selectors cover the day-section layouts seen on studio sites
(".schedule-day li.class" lists under ".schedule-day-header-date" headers)
and session-card widgets; field selectors start with the hashed class names
of known widgets before the generic structural ones.
"""

from src.studio_scraper.pages.base import SchedulePage


class UniversalSchedulePage(SchedulePage):
    """Fallback handler used when no platform signature matches."""

    platform = "universal"

    CONTAINER_SELECTORS = (
        ".schedule-day li.class",
        ".session-row-view",
        '[class*="session-card"]',
        '[class*="class-card"]',
        '[class*="class-item"]',
        '[class*="schedule-item"]',
        ".class-row",
        "li.class",
        "[data-class-id]",
        "tr[data-test-row]",
    )
    FIELD_SELECTORS = {
        "name": (".session-card_sessionName__EKrdk", ".ButtonLabel-sc-vvc4oq"),
        "time": (".session-card_sessionTime__hNAfR", ".BoldLabel-sc-ha1dsk"),
        "instructor": (
            ".session-card_sessionTeacher__tFtaz",
            'p[class*="LineItem"]',
            "p.fKKBMd",
        ),
        "location": (".session-card_sessionStudio__yRE6h",),
    }

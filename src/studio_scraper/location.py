"""Location Filter.

One booking page often serves several branches of a studio, and nothing on it
is geocoded, so branch matching is fuzzy: both the venue address and the
page's location label are split into lowercase tokens of three or more
characters, and the score is the number of address tokens that contain, or are
contained in, some label token.

Two modes:
  * pre-filter: platform handlers open the page's room/branch dropdown and
    activate the best-scoring option before extraction;
  * post-filter: candidates whose extracted location label shares no token
    with the address are dropped. A missing label never rejects a candidate.
"""

import asyncio
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from src.studio_scraper.logging import get_logger
from src.studio_scraper.session import PageLike

log = get_logger(__name__)

MIN_TOKEN_LENGTH = 3

_TOKEN_SPLIT_RE = re.compile(r"[\W_]+", re.UNICODE)

T = TypeVar("T")


def tokenize(text: str | None) -> list[str]:
    """Lowercase tokens of at least three characters, split on whitespace/punctuation."""
    if not text:
        return []
    return [t for t in _TOKEN_SPLIT_RE.split(text.lower()) if len(t) >= MIN_TOKEN_LENGTH]


def overlap_score(address: str | None, label: str | None) -> int:
    """Count address tokens that contain, or are contained in, a label token."""
    label_tokens = tokenize(label)
    if not label_tokens:
        return 0
    return sum(
        1
        for a in tokenize(address)
        if any(a in b or b in a for b in label_tokens)
    )


def location_matches(address: str | None, label: str | None) -> bool:
    """Post-filter test: reject only when both strings exist and share no token."""
    if not address or not address.strip() or not label or not label.strip():
        return True
    return overlap_score(address, label) > 0


def best_option(address: str, labels: Sequence[str]) -> int | None:
    """Index of the highest-scoring option label, or None when nothing overlaps.

    Ties go to the earliest option.
    """
    best_index: int | None = None
    best_score = 0
    for index, label in enumerate(labels):
        score = overlap_score(address, label)
        if score > best_score:
            best_index, best_score = index, score
    return best_index


def filter_by_location(
    address: str | None,
    items: Sequence[T],
    label_of: Callable[[T], str | None],
) -> list[T]:
    """Keep the items whose label passes location_matches().

    Never adds items; with no address every item is kept.
    """
    if not address:
        return list(items)
    kept = [item for item in items if location_matches(address, label_of(item))]
    if len(kept) < len(items):
        log.info(
            "location_post_filter",
            address=address,
            kept=len(kept),
            dropped=len(items) - len(kept),
        )
    return kept


@dataclass(frozen=True)
class LocationControl:
    """Selectors for a platform's room/branch dropdown."""

    button_selector: str
    option_selector: str = 'input[type="checkbox"]'
    label_container: str = "li, div, label"


_CLEAR_CHECKED_JS = """(optionSelector) => {
    const checked = Array.from(document.querySelectorAll(optionSelector))
        .filter((el) => el.checked);
    checked.forEach((el) => {
        el.click();
        el.dispatchEvent(new Event('change', { bubbles: true }));
    });
    return checked.length;
}"""

_CLICK_JS = """(selector) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    el.click();
    return true;
}"""

_OPTION_LABELS_JS = """([optionSelector, container]) => {
    return Array.from(document.querySelectorAll(optionSelector)).map((el) => {
        const parent = el.closest(container);
        return ((parent && parent.textContent) || el.getAttribute('aria-label') || '').trim();
    });
}"""

_ACTIVATE_OPTION_JS = """([optionSelector, index]) => {
    const el = document.querySelectorAll(optionSelector)[index];
    if (!el) return false;
    el.click();
    el.dispatchEvent(new Event('change', { bubbles: true }));
    document.body.click();
    return true;
}"""


async def apply_prefilter(
    page: PageLike,
    address: str | None,
    control: LocationControl,
    *,
    settle_seconds: float = 1.0,
) -> bool:
    """Activate the page's branch option that best matches `address`.

    Returns:
        True when an option was activated. False (page left unfiltered) when
        there is no address, no dropdown, no overlapping option, or any step
        of the interaction fails.
    """
    if not address:
        return False

    try:
        cleared = await page.evaluate(_CLEAR_CHECKED_JS, control.option_selector)
        if cleared:
            await asyncio.sleep(settle_seconds)

        opened = await page.evaluate(_CLICK_JS, control.button_selector)
        if not opened:
            log.info("location_control_missing", selector=control.button_selector)
            return False
        await asyncio.sleep(settle_seconds)

        labels: list[str] = await page.evaluate(
            _OPTION_LABELS_JS, [control.option_selector, control.label_container]
        ) or []
        index = best_option(address, labels)
        if index is None:
            log.info(
                "location_option_unmatched",
                address=address,
                options=len(labels),
            )
            return False

        activated = await page.evaluate(
            _ACTIVATE_OPTION_JS, [control.option_selector, index]
        )
        if not activated:
            return False
        await asyncio.sleep(settle_seconds * 2)
    except Exception as e:
        log.warning("location_prefilter_failed", error=str(e), type=type(e).__name__)
        return False

    log.info("location_prefilter_applied", address=address, option=labels[index])
    return True

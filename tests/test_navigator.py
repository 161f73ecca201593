"""Tests for finding and activating the target date control."""

import pytest

from fakes import FakePage
from src.studio_scraper import navigator
from src.studio_scraper.dates import resolve_formats
from src.studio_scraper.navigator import find_date_control, navigate_to_date

FORMATS = resolve_formats("2025-07-25")
STRIP = "button[data-test-date-button]"


def _element(selector, position, text, attrs=""):
    return {"selector": selector, "position": position, "text": text, "attrs": attrs}


class TestFindDateControl:
    def test_full_format_match(self):
        elements = [_element("[data-date]", 0, "Thu"), _element("[data-date]", 1, "Fri", "2025-07-25")]
        assert find_date_control(elements, FORMATS) == elements[1]

    def test_day_only_requires_platform_selector(self):
        elements = [_element(".day", 0, "25"), _element(STRIP, 3, "Fri 25")]
        assert find_date_control(elements, FORMATS) is None
        assert find_date_control(elements, FORMATS, [STRIP]) == elements[1]

    def test_full_match_beats_earlier_day_only(self):
        elements = [_element(STRIP, 0, "25"), _element(".date", 0, "Fri, Jul 25")]
        assert find_date_control(elements, FORMATS, [STRIP]) == elements[1]


class TestNavigateToDate:
    @pytest.mark.asyncio
    async def test_activates_matching_control(self):
        page = FakePage(
            {
                navigator._LIST_DATE_ELEMENTS_JS: [
                    _element(STRIP, 0, "Thu 24"),
                    _element(STRIP, 1, "Fri 25"),
                ],
                navigator._ACTIVATE_JS: True,
                navigator._CAPTURE_TEXT_JS: "Fri 25\n7:00 AM Sculpt",
            }
        )
        outcome = await navigate_to_date(
            page, FORMATS, platform_selectors=[STRIP], generic=False, settle_seconds=0
        )
        assert outcome.matched is True
        assert outcome.selector == STRIP
        assert outcome.elements_seen == 2
        assert outcome.captured_text.startswith("Fri 25")
        assert page.calls_to(navigator._ACTIVATE_JS) == [[STRIP, 1]]
        assert page.calls_to(navigator._LIST_DATE_ELEMENTS_JS) == [[STRIP]]

    @pytest.mark.asyncio
    async def test_no_match_leaves_page_as_rendered(self):
        page = FakePage(
            {
                navigator._LIST_DATE_ELEMENTS_JS: [_element(".date", 0, "Mon, Jul 21")],
                navigator._CAPTURE_TEXT_JS: "Mon, Jul 21",
            }
        )
        outcome = await navigate_to_date(page, FORMATS, settle_seconds=0)
        assert outcome.matched is False
        assert outcome.elements_seen == 1
        assert outcome.captured_text == "Mon, Jul 21"
        assert page.calls_to(navigator._ACTIVATE_JS) == []

    @pytest.mark.asyncio
    async def test_failed_click_counts_as_not_found(self):
        page = FakePage(
            {
                navigator._LIST_DATE_ELEMENTS_JS: [_element(".date", 0, "Fri, Jul 25")],
                navigator._ACTIVATE_JS: False,
            }
        )
        outcome = await navigate_to_date(page, FORMATS, settle_seconds=0)
        assert outcome.matched is False
        assert outcome.captured_text == ""

    @pytest.mark.asyncio
    async def test_page_errors_are_fail_soft(self):
        page = FakePage(
            {
                navigator._LIST_DATE_ELEMENTS_JS: RuntimeError("context destroyed"),
                navigator._CAPTURE_TEXT_JS: RuntimeError("context destroyed"),
            }
        )
        outcome = await navigate_to_date(page, FORMATS, settle_seconds=0)
        assert outcome.matched is False
        assert outcome.captured_text == ""

    @pytest.mark.asyncio
    async def test_generic_selectors_follow_platform_selectors(self):
        page = FakePage()
        await navigate_to_date(page, FORMATS, platform_selectors=[STRIP], settle_seconds=0)
        (selectors,) = page.calls_to(navigator._LIST_DATE_ELEMENTS_JS)
        assert selectors[0] == STRIP
        assert selectors[1:] == list(navigator.GENERIC_DATE_SELECTORS)

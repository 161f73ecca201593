"""End-to-end tests for ScheduleExtractor against scripted pages.

Each test scripts the in-page evaluations a real booking page would answer
and checks the records (or the empty list) the engine produces.
"""

import asyncio
from decimal import Decimal

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from structlog.testing import capture_logs

from fakes import FakeLauncher, FakePage
from src.studio_scraper import cascade, location, navigator
from src.studio_scraper.engine import EMPTY_MESSAGE, ScheduleExtractor
from src.studio_scraper.models import ScrapedClassRecord, VenueDescriptor
from src.studio_scraper.pages import mariana
from src.studio_scraper.pages.mariana import MarianaSchedulePage
from src.studio_scraper.pages.universal import UniversalSchedulePage

TARGET = "2025-07-25"
MARIANA_URL = "https://sculpt.marianaiframes.com/iframe/schedule/daily/48541"
STUDIO_URL = "https://studio.example.com/schedule"


def _mariana_row(name, time, duration, instructor, room):
    fields = MarianaSchedulePage.FIELD_SELECTORS
    return {
        "probes": {
            fields["name"][0]: name,
            fields["time"][0]: time,
            fields["duration"][0]: duration,
            fields["instructor"][0]: instructor,
            fields["location"][0]: room,
        },
        "text": f"{time} {duration} {room} {name} {instructor}",
        "lines": [time, duration, room, name, instructor],
        "date_context": None,
    }


def _mariana_page(*, table_ready=True, rows=None):
    if rows is None:
        rows = [
            _mariana_row("Sculpt", "7:00 AM", "50 min", "Jane D", "Flatiron"),
            _mariana_row("Barre Burn", "8:00 AM", "45 min", "Sam K", "Flatiron"),
        ]
    return FakePage(
        {
            navigator._LIST_DATE_ELEMENTS_JS: [
                {"selector": "button[data-test-date-button]", "position": 0, "text": "Thu 24", "attrs": ""},
                {"selector": "button[data-test-date-button]", "position": 1, "text": "Fri 25", "attrs": ""},
            ],
            navigator._ACTIVATE_JS: True,
            navigator._CAPTURE_TEXT_JS: "Fri 25 7:00 AM Sculpt",
            mariana._TABLE_READY_JS: table_ready,
            location._CLEAR_CHECKED_JS: 0,
            location._CLICK_JS: True,
            location._OPTION_LABELS_JS: ["Ride", "Flatiron"],
            location._ACTIVATE_OPTION_JS: True,
            cascade._COLLECT_JS: {
                "usedSelector": MarianaSchedulePage.CONTAINER_SELECTORS[0],
                "elementsSeen": len(rows),
                "candidates": rows,
            },
        },
        url=MARIANA_URL,
    )


def _studio_page(candidates=None, text="", date_elements=()):
    fields = UniversalSchedulePage.FIELD_SELECTORS
    if candidates is None:
        candidates = [
            {
                "probes": {fields["name"][0]: "Sculpt (50 min)", fields["time"][0]: "7:00 AM"},
                "text": "7:00 AM Sculpt (50 min) Jane",
                "lines": ["7:00 AM", "Sculpt (50 min)", "Jane"],
                "date_context": "Fri, Jul 25",
            },
            {
                "probes": {fields["name"][0]: "Barre", fields["time"][0]: "9:00 AM"},
                "text": "9:00 AM Barre",
                "lines": ["9:00 AM", "Barre"],
                "date_context": "Thu, Jul 24",
            },
        ]
    return FakePage(
        {
            navigator._LIST_DATE_ELEMENTS_JS: list(date_elements),
            navigator._ACTIVATE_JS: True,
            navigator._CAPTURE_TEXT_JS: text,
            cascade._COLLECT_JS: {
                "usedSelector": ".session-row-view" if candidates else None,
                "elementsSeen": len(candidates),
                "candidates": candidates,
            },
        },
        url=STUDIO_URL,
    )


def _extractor(launcher, make_manager, config):
    return ScheduleExtractor(config, make_manager(launcher, config))


class TestScrapeClasses:
    @pytest.mark.asyncio
    async def test_mariana_branch_schedule(self, fast_config, make_manager):
        page = _mariana_page()
        launcher = FakeLauncher(page)
        venue = VenueDescriptor(name="Sculpt", booking_url=MARIANA_URL, physical_address="Flatiron, New York")

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(venue, TARGET)

        assert [r.name for r in records] == ["Sculpt", "Barre Burn"]
        first = records[0]
        assert first.start_time == "7:00 AM"
        assert first.duration_minutes == 50
        assert first.instructor == "Jane D"
        assert first.location == "Flatiron"
        assert first.source_strategy == "mariana"
        assert first.id.startswith("mariana-") and first.id.endswith("-0")
        assert page.calls_to(navigator._ACTIVATE_JS) == [["button[data-test-date-button]", 1]]
        assert page.calls_to(location._ACTIVATE_OPTION_JS) == [['input[type="checkbox"]', 1]]
        page.set_viewport_size.assert_awaited()
        page.wait_for_selector.assert_awaited_once()
        launcher.sessions[0].browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mariana_drops_rows_from_other_branches(self, fast_config, make_manager):
        rows = [
            _mariana_row("Sculpt", "7:00 AM", "50 min", "Jane D", "Flatiron"),
            _mariana_row("Ride", "7:30 AM", "45 min", "Lee P", "Williamsburg"),
            _mariana_row("Barre Burn", "8:00 AM", "45 min", "Sam K", "Flatiron Annex"),
        ]
        launcher = FakeLauncher(_mariana_page(rows=rows))
        venue = VenueDescriptor(
            name="Test Studio", booking_url=MARIANA_URL, physical_address="123 Main St, Flatiron"
        )

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(venue, TARGET)

        assert [r.location for r in records] == ["Flatiron", "Flatiron Annex"]
        assert [r.name for r in records] == ["Sculpt", "Barre Burn"]

    @pytest.mark.asyncio
    async def test_date_strip_context_does_not_drop_scoped_cards(self, fast_config, make_manager):
        fields = UniversalSchedulePage.FIELD_SELECTORS
        strip_context = "2025-07-26 Sat 26"
        page = _studio_page(
            candidates=[
                {
                    "probes": {fields["name"][0]: "Sculpt", fields["time"][0]: "7:00 AM"},
                    "text": "7:00 AM Sculpt",
                    "lines": ["7:00 AM", "Sculpt"],
                    "date_context": strip_context,
                },
                {
                    "probes": {fields["name"][0]: "Barre", fields["time"][0]: "9:00 AM"},
                    "text": "9:00 AM Barre",
                    "lines": ["9:00 AM", "Barre"],
                    "date_context": strip_context,
                },
            ],
            date_elements=[
                {"selector": "[data-date]", "position": 0, "text": "Thu 24", "attrs": "2025-07-24"},
                {"selector": "[data-date]", "position": 1, "text": "Fri 25", "attrs": "2025-07-25"},
                {"selector": "[data-date]", "position": 2, "text": "Sat 26", "attrs": "2025-07-26"},
            ],
        )
        launcher = FakeLauncher(page)
        venue = VenueDescriptor(name="Studio", booking_url=STUDIO_URL)

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(
            venue, TARGET, allow_unscoped_dates=False
        )

        assert [r.name for r in records] == ["Sculpt", "Barre"]
        assert page.calls_to(navigator._ACTIVATE_JS) == [["[data-date]", 1]]

    @pytest.mark.asyncio
    async def test_mariana_table_never_renders(self, fast_config, make_manager):
        page = _mariana_page(table_ready=False)
        launcher = FakeLauncher(page)
        venue = VenueDescriptor(booking_url=MARIANA_URL, physical_address="Flatiron")

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(venue, TARGET)

        assert records == []
        assert page.calls_to(location._CLICK_JS) == []
        launcher.sessions[0].browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_universal_keeps_only_target_day_section(self, fast_config, make_manager):
        launcher = FakeLauncher(_studio_page())
        venue = VenueDescriptor(name="Studio", booking_url=STUDIO_URL)

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(venue, TARGET)

        assert len(records) == 1
        (record,) = records
        assert record.name == "Sculpt"
        assert record.duration_minutes == 50
        assert record.start_time == "7:00 AM"
        assert record.class_type == "fitness"
        assert record.difficulty_tier == "intermediate"
        assert record.source_strategy == "universal"

    @pytest.mark.asyncio
    async def test_text_fallback(self, fast_config, make_manager):
        page = _studio_page(candidates=[], text="Friday\n7:00 AM\nYoga Flow (60 min) with Sam")
        launcher = FakeLauncher(page)
        venue = VenueDescriptor(booking_url=STUDIO_URL)

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(venue, TARGET)

        assert [(r.name, r.instructor, r.duration_minutes, r.class_type) for r in records] == [
            ("Yoga Flow", "Sam", 60, "yoga")
        ]

    @pytest.mark.asyncio
    async def test_unscoped_candidates_rejected_when_disallowed(self, fast_config, make_manager):
        page = _studio_page(candidates=[], text="7:00 AM\nYoga Flow (60 min) with Sam")
        extractor = _extractor(FakeLauncher(page), make_manager, fast_config)

        records = await extractor.scrape_classes(
            VenueDescriptor(booking_url=STUDIO_URL), TARGET, allow_unscoped_dates=False
        )

        assert records == []

    @pytest.mark.asyncio
    async def test_nothing_found_returns_empty(self, fast_config, make_manager):
        launcher = FakeLauncher(_studio_page(candidates=[], text=""))
        extractor = _extractor(launcher, make_manager, fast_config)

        with capture_logs() as logs:
            records = await extractor.scrape_classes(VenueDescriptor(booking_url=STUDIO_URL), TARGET)

        assert records == []
        assert any(entry["event"] == "no_candidates_found" for entry in logs)
        launcher.sessions[0].browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsupported_platform_never_launches(self, fast_config, make_manager):
        launcher = FakeLauncher(FakePage())
        extractor = _extractor(launcher, make_manager, fast_config)
        venue = VenueDescriptor(booking_url="https://widgets.mindbodyonline.com/widgets/schedules/1")

        assert await extractor.scrape_classes(venue, TARGET) == []
        assert launcher.launches == 0

    @pytest.mark.asyncio
    async def test_invalid_date_never_launches(self, fast_config, make_manager):
        launcher = FakeLauncher(FakePage())
        extractor = _extractor(launcher, make_manager, fast_config)

        assert await extractor.scrape_classes(VenueDescriptor(booking_url=STUDIO_URL), "25/07/2025") == []
        assert launcher.launches == 0

    @pytest.mark.asyncio
    async def test_deadline_returns_empty_and_releases(self, fast_config, make_manager):
        config = fast_config.model_copy(update={"schedule_timeout_seconds": 0.05})
        page = _studio_page()

        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        page.goto.side_effect = hang
        launcher = FakeLauncher(page)
        extractor = _extractor(launcher, make_manager, config)

        with capture_logs() as logs:
            records = await extractor.scrape_classes(VenueDescriptor(booking_url=STUDIO_URL), TARGET)

        assert records == []
        assert any(entry["event"] == "scrape_timeout" for entry in logs)
        launcher.sessions[0].browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_timeout_degrades(self, fast_config, make_manager):
        page = _studio_page()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 10000ms exceeded")
        launcher = FakeLauncher(page)

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(
            VenueDescriptor(booking_url=STUDIO_URL), TARGET
        )

        assert page.goto.await_count == 2
        assert [r.name for r in records] == ["Sculpt"]

    @pytest.mark.asyncio
    async def test_launch_failure_returns_empty(self, fast_config, make_manager):
        launcher = FakeLauncher(error=RuntimeError("Executable doesn't exist"))
        extractor = _extractor(launcher, make_manager, fast_config)

        assert await extractor.scrape_classes(VenueDescriptor(booking_url=STUDIO_URL), TARGET) == []
        assert launcher.launches == 1

    @pytest.mark.asyncio
    async def test_page_failure_returns_empty_and_releases(self, fast_config, make_manager):
        page = _studio_page()
        page.responses[cascade._COLLECT_JS] = RuntimeError("Execution context was destroyed")
        launcher = FakeLauncher(page)

        records = await _extractor(launcher, make_manager, fast_config).scrape_classes(
            VenueDescriptor(booking_url=STUDIO_URL), TARGET
        )

        assert records == []
        launcher.sessions[0].browser.close.assert_awaited_once()


class TestScrapeVenues:
    @pytest.mark.asyncio
    async def test_each_venue_gets_its_own_result(self, fast_config, make_manager):
        launcher = FakeLauncher(_studio_page())
        extractor = _extractor(launcher, make_manager, fast_config)
        venues = [
            VenueDescriptor(booking_url="https://clients.mindbodyonline.com/x"),
            VenueDescriptor(booking_url=STUDIO_URL),
        ]

        results = await extractor.scrape_venues(venues, TARGET)

        assert [len(r) for r in results] == [0, 1]
        assert launcher.launches == 1


class TestScrapeResponse:
    MINDBODY = VenueDescriptor(booking_url="https://clients.mindbodyonline.com/x")

    @pytest.mark.asyncio
    async def test_scraped_records(self, fast_config, make_manager):
        extractor = _extractor(FakeLauncher(_studio_page()), make_manager, fast_config)

        response = await extractor.scrape_response(VenueDescriptor(booking_url=STUDIO_URL), TARGET)

        assert response.success is True
        assert response.count == 1
        assert response.source == "web_scraping"
        assert response.message is None

    @pytest.mark.asyncio
    async def test_empty_without_fallback(self, fast_config, make_manager):
        extractor = _extractor(FakeLauncher(), make_manager, fast_config)

        response = await extractor.scrape_response(self.MINDBODY, TARGET)

        assert response.data == []
        assert response.count == 0
        assert response.message == EMPTY_MESSAGE

    @pytest.mark.asyncio
    async def test_fallback_used_when_engine_returns_nothing(self, fast_config, make_manager):
        stored = ScrapedClassRecord(
            id="db-1",
            name="Sculpt",
            description="Sculpt class",
            price=Decimal("30"),
            source_strategy="database",
        )
        seen = []

        async def fallback(venue, target):
            seen.append(target.isoformat())
            return [stored]

        extractor = _extractor(FakeLauncher(), make_manager, fast_config)
        response = await extractor.scrape_response(self.MINDBODY, TARGET, fallback=fallback)

        assert response.source == "database"
        assert response.data == [stored]
        assert response.message is None
        assert seen == [TARGET]

    @pytest.mark.asyncio
    async def test_fallback_failure_is_empty(self, fast_config, make_manager):
        async def fallback(venue, target):
            raise ConnectionError("database unavailable")

        extractor = _extractor(FakeLauncher(), make_manager, fast_config)
        response = await extractor.scrape_response(self.MINDBODY, TARGET, fallback=fallback)

        assert response.count == 0
        assert response.message == EMPTY_MESSAGE

import pytest

from fakes import FakeLauncher
from src.studio_scraper.config import ScraperConfig
from src.studio_scraper.session import BrowserSessionManager, RuntimeProfile


@pytest.fixture
def fast_config() -> ScraperConfig:
    """Config with every settle delay and poll interval collapsed to zero."""
    return ScraperConfig(
        scraper_runtime="standard",
        initial_settle_seconds=0,
        date_settle_seconds=0,
        filter_settle_seconds=0,
        table_poll_seconds=0,
        table_wait_attempts=3,
        release_grace_seconds=0.5,
        event_scroll_attempts=3,
        event_scroll_pause_seconds=0,
        block_resources=True,
    )


@pytest.fixture
def make_manager(fast_config):
    """Build a BrowserSessionManager around a FakeLauncher."""

    def _make(launcher: FakeLauncher, config: ScraperConfig | None = None) -> BrowserSessionManager:
        return BrowserSessionManager(
            config or fast_config,
            profile=RuntimeProfile.STANDARD,
            launcher=launcher,
        )

    return _make

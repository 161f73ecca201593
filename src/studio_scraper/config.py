"""Scraper configuration loaded from environment variables.

Launch flags, timeouts and settle delays are process-wide and read-only once
loaded; every scrape call reads them through get_config().
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class ScraperConfig(BaseSettings):
    """Scraper configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Runtime profile ("auto" inspects VERCEL / AWS_LAMBDA_FUNCTION_NAME)
    scraper_runtime: Literal["auto", "serverless", "standard"] = Field(
        default="auto",
        description="Browser launch profile: auto, serverless or standard",
    )
    serverless_executable_path: str = Field(
        default="/tmp/chromium",
        description="Fixed Chromium binary used by the serverless profile",
    )
    headless: bool = Field(
        default=True,
        description="Launch the browser without a visible window",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        description="User-Agent header sent by every scraping page",
    )
    viewport_width: int = Field(default=1200, description="Page viewport width")
    viewport_height: int = Field(default=800, description="Page viewport height")

    # Deadlines (seconds unless suffixed _ms)
    schedule_timeout_seconds: float = Field(
        default=45.0,
        description="Hard deadline for one schedule extraction call",
    )
    event_timeout_seconds: float = Field(
        default=120.0,
        description="Hard deadline for multi-page event discovery",
    )
    navigation_timeout_ms: int = Field(
        default=10000,
        description="Sub-deadline for page.goto before degrading",
    )
    selector_timeout_ms: int = Field(
        default=5000,
        description="Timeout for waiting on platform schedule selectors",
    )
    release_grace_seconds: float = Field(
        default=5.0,
        description="Upper bound on browser teardown after the call ends",
    )

    # Settle delays after simulated interactions
    initial_settle_seconds: float = Field(default=0.5)
    date_settle_seconds: float = Field(default=0.75)
    filter_settle_seconds: float = Field(default=1.0)
    table_poll_seconds: float = Field(default=1.0)
    table_wait_attempts: int = Field(
        default=10,
        description="Polls for a platform schedule table before giving up",
    )

    # Extraction policy
    allow_unscoped_dates: bool = Field(
        default=True,
        description=(
            "Keep candidates when no date signal exists anywhere on the page "
            "(logged as date_scope_unverified)"
        ),
    )
    block_resources: bool = Field(
        default=True,
        description="Abort image/font/media requests on scraping pages",
    )

    # Event discovery
    event_scroll_attempts: int = Field(
        default=20,
        description="Maximum lazy-load scroll rounds per event listing page",
    )
    event_scroll_pause_seconds: float = Field(default=2.0)

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: ScraperConfig | None = None


def get_config() -> ScraperConfig:
    """Get the scraper configuration singleton.

    Returns:
        ScraperConfig: Scraper configuration instance
    """
    global _config
    if _config is None:
        _config = ScraperConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the env."""
    global _config
    _config = None

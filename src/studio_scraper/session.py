"""Browser Session Manager.

Owns the lifecycle of one automated browser per scrape call. A session is a
value handed out by BrowserSessionManager.acquire() and threaded through the
call; nothing holds a browser in a class-level field, so concurrent calls
never share a process.

Launch configuration depends on a RuntimeProfile resolved once from the
environment: serverless runtimes ship a fixed minimal Chromium binary and a
reduced flag set, general-purpose hosts get the full headless-stability flags.
"""

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from playwright.async_api import async_playwright

from src.studio_scraper.config import ScraperConfig, get_config
from src.studio_scraper.logging import get_logger
from src.studio_scraper.utils import configure_page_for_scraping

logger = get_logger(__name__)

STANDARD_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-extensions",
)

SERVERLESS_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-zygote",
    "--single-process",
)


class PageLike(Protocol):
    """The narrow page capability set the extraction engine relies on."""

    url: str

    async def goto(self, url: str, **kwargs: Any) -> Any: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> Any: ...

    async def set_viewport_size(self, viewport_size: Mapping[str, int]) -> None: ...

    async def close(self) -> None: ...


class RuntimeProfile(str, Enum):
    """Where the process runs, which decides how the browser is launched."""

    SERVERLESS = "serverless"
    STANDARD = "standard"

    @classmethod
    def resolve(
        cls, setting: str = "auto", environ: Mapping[str, str] | None = None
    ) -> "RuntimeProfile":
        """Resolve the profile from config, falling back to environment signals.

        Args:
            setting: "serverless", "standard" or "auto".
            environ: Environment mapping (defaults to os.environ).
        """
        if setting in (cls.SERVERLESS.value, cls.STANDARD.value):
            return cls(setting)
        env = os.environ if environ is None else environ
        if env.get("VERCEL") == "1" or env.get("AWS_LAMBDA_FUNCTION_NAME"):
            return cls.SERVERLESS
        return cls.STANDARD


@dataclass(frozen=True)
class LaunchOptions:
    """Chromium launch arguments for one runtime profile."""

    profile: RuntimeProfile
    headless: bool = True
    args: tuple[str, ...] = STANDARD_ARGS
    executable_path: str | None = None

    @classmethod
    def for_profile(
        cls, profile: RuntimeProfile, config: ScraperConfig
    ) -> "LaunchOptions":
        if profile is RuntimeProfile.SERVERLESS:
            return cls(
                profile=profile,
                headless=True,
                args=SERVERLESS_ARGS,
                executable_path=config.serverless_executable_path,
            )
        return cls(profile=profile, headless=config.headless, args=STANDARD_ARGS)

    def as_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"headless": self.headless, "args": list(self.args)}
        if self.executable_path:
            kwargs["executable_path"] = self.executable_path
        return kwargs


@dataclass
class BrowserSession:
    """One launched browser, exclusively owned by a single scrape call."""

    browser: Any
    context: Any
    playwright: Any = None
    config: ScraperConfig = field(default_factory=get_config)
    pages: list[Any] = field(default_factory=list)
    released: bool = False

    async def new_page(self) -> PageLike:
        """Open a page configured for scraping (blocked media, read-only guard)."""
        if self.released:
            raise RuntimeError("BrowserSession used after release")
        page = await self.context.new_page()
        self.pages.append(page)
        await configure_page_for_scraping(
            page,
            block_resources=self.config.block_resources,
            default_timeout_ms=self.config.navigation_timeout_ms,
        )
        return page


Launcher = Callable[[LaunchOptions, ScraperConfig], Awaitable[BrowserSession]]


async def launch_playwright_session(
    options: LaunchOptions, config: ScraperConfig
) -> BrowserSession:
    """Start Playwright and launch Chromium with the given options.

    Anything already started is stopped again if a later launch step fails.
    """
    playwright = await async_playwright().start()
    browser = None
    try:
        browser = await playwright.chromium.launch(**options.as_kwargs())
        context = await browser.new_context(
            user_agent=config.user_agent,
            viewport={
                "width": config.viewport_width,
                "height": config.viewport_height,
            },
        )
    except BaseException:
        if browser is not None:
            await browser.close()
        await playwright.stop()
        raise
    return BrowserSession(
        browser=browser, context=context, playwright=playwright, config=config
    )


class BrowserSessionManager:
    """Hands out browser sessions and guarantees their release.

    Usage:
        async with manager.acquire() as session:
            page = await session.new_page()
            ...
    """

    def __init__(
        self,
        config: ScraperConfig | None = None,
        profile: RuntimeProfile | None = None,
        launcher: Launcher | None = None,
    ) -> None:
        """Initialize BrowserSessionManager.

        Args:
            config: Scraper configuration (defaults to the process singleton).
            profile: Runtime profile; resolved from config/env when omitted.
            launcher: Coroutine that launches a session (Playwright by default).
        """
        self.config = config or get_config()
        self.profile = profile or RuntimeProfile.resolve(self.config.scraper_runtime)
        self.launch_options = LaunchOptions.for_profile(self.profile, self.config)
        self._launcher = launcher or launch_playwright_session

        logger.debug(
            "session_manager_initialized",
            profile=self.profile.value,
            args=len(self.launch_options.args),
            executable=self.launch_options.executable_path,
        )

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[BrowserSession]:
        """Launch a browser for the duration of the block, then release it.

        Release runs on every exit path, including cancellation by the
        call-level deadline.
        """
        session = await self._launcher(self.launch_options, self.config)
        logger.info("browser_session_acquired", profile=self.profile.value)
        try:
            yield session
        finally:
            await self.release(session)

    async def release(self, session: BrowserSession) -> None:
        """Close a session's pages, browser and driver exactly once.

        Teardown is bounded by release_grace_seconds; a second call is a no-op.
        """
        if session.released:
            logger.debug("browser_session_release_skipped", reason="already_released")
            return
        session.released = True

        try:
            await asyncio.wait_for(
                self._close(session), timeout=self.config.release_grace_seconds
            )
        except asyncio.TimeoutError:
            logger.error(
                "browser_session_release_timeout",
                grace_seconds=self.config.release_grace_seconds,
            )
            return
        logger.info("browser_session_released", pages=len(session.pages))

    async def _close(self, session: BrowserSession) -> None:
        for page in session.pages:
            try:
                await page.close()
            except Exception as e:
                logger.debug("page_close_failed", error=str(e))
        try:
            await session.context.close()
        except Exception as e:
            logger.warning("context_close_failed", error=str(e))
        try:
            await session.browser.close()
        except Exception as e:
            logger.warning("browser_close_failed", error=str(e))
        if session.playwright is not None:
            try:
                await session.playwright.stop()
            except Exception as e:
                logger.warning("playwright_stop_failed", error=str(e))

"""Shared page set-up: resource blocking and read-only guardrails."""

from playwright.async_api import Page, Route

from src.studio_scraper.logging import get_logger

log = get_logger(__name__)

# Schedule text never depends on these; stylesheets stay so controls keep their layout
BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "font", "media"})

# Booking widgets read schedules with GET/POST; anything else could change server state.
_BLOCKED_METHODS: frozenset[str] = frozenset({"PUT", "DELETE", "PATCH"})


async def configure_page_for_scraping(
    page: Page,
    *,
    block_resources: bool = True,
    read_only: bool = True,
    default_timeout_ms: int = 10000,
) -> None:
    """Set up a Playwright page for schedule scraping.

    Args:
        page: Playwright Page instance.
        block_resources: Abort image, font and media requests.
        read_only: Abort PUT/DELETE/PATCH requests so simulated clicks on a
                   booking widget can never modify a reservation.
        default_timeout_ms: Default timeout for page actions and navigation.
    """

    async def _route(route: Route) -> None:
        request = route.request

        if read_only and request.method in _BLOCKED_METHODS:
            log.warning(
                "blocked_mutating_request",
                method=request.method,
                url=request.url,
            )
            await route.abort("blockedbyclient")
            return

        if block_resources and request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    if block_resources or read_only:
        await page.route("**/*", _route)
    page.set_default_timeout(default_timeout_ms)
    page.set_default_navigation_timeout(default_timeout_ms)

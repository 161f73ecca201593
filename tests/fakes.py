"""Browser doubles for extraction tests.

No test launches a real browser: pages are FakePage objects whose
evaluate() answers by looking up the in-page script it was given, and
sessions come from a counting fake launcher.
"""

from typing import Any
from unittest.mock import AsyncMock, Mock

from src.studio_scraper.session import BrowserSession


class FakePage:
    """Page double answering evaluate() from a {script: value-or-callable} table.

    Unknown scripts evaluate to None. Callables receive the evaluate() arg.
    """

    def __init__(self, responses: dict[str, Any] | None = None, url: str = "about:blank"):
        self.url = url
        self.responses = dict(responses or {})
        self.evaluated: list[tuple[str, Any]] = []
        self.goto = AsyncMock()
        self.wait_for_selector = AsyncMock()
        self.set_viewport_size = AsyncMock()
        self.close = AsyncMock()
        self.route = AsyncMock()
        self.set_default_timeout = Mock()
        self.set_default_navigation_timeout = Mock()

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append((expression, arg))
        response = self.responses.get(expression)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(arg)
        return response

    def calls_to(self, expression: str) -> list[Any]:
        return [arg for script, arg in self.evaluated if script == expression]


class FakeLauncher:
    """Launcher double that counts launches and serves prepared pages in order."""

    def __init__(self, *pages: FakePage, error: Exception | None = None):
        self.pages = list(pages)
        self.error = error
        self.launches = 0
        self.sessions: list[BrowserSession] = []

    async def __call__(self, options, config) -> BrowserSession:
        self.launches += 1
        if self.error is not None:
            raise self.error
        context = Mock()
        context.new_page = AsyncMock(side_effect=list(self.pages))
        context.close = AsyncMock()
        browser = Mock()
        browser.close = AsyncMock()
        session = BrowserSession(browser=browser, context=context, config=config)
        self.sessions.append(session)
        return session



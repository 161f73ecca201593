"""Error hierarchy for schedule extraction.

The transient/permanent split lets tenacity decide what to retry (a slow
navigation) and what not to (an unsupported booking platform). None of these
exceptions leave the engine: ScheduleExtractor converts every one of them into
an empty or partial result and logs the cause.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(2))
    async def goto(page, url):
        ...
"""


class ScrapingError(Exception):
    """Base exception for all scraping errors."""

    pass


class TransientError(ScrapingError):
    """Temporary failure that may succeed on retry.

    Examples: navigation timeouts, a schedule table that has not rendered yet.
    """

    pass


class NavigationTimeoutError(TransientError):
    """Page did not reach a ready state within its navigation sub-deadline.

    Degrades to "continue with whatever loaded" once retries are spent.
    """

    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(f"Navigation to {url} timed out after {timeout_ms}ms")
        self.url = url
        self.timeout_ms = timeout_ms


class PermanentError(ScrapingError):
    """Failure that won't succeed on retry."""

    pass


class UnsupportedPlatformError(PermanentError):
    """Booking URL belongs to an embed platform that cannot be automated.

    Raised before any browser is launched.
    """

    def __init__(self, platform: str, url: str) -> None:
        super().__init__(f"Unsupported booking platform {platform!r} for {url}")
        self.platform = platform
        self.url = url


class DateNotFoundError(ScrapingError):
    """No calendar control on the page matched the target date."""

    def __init__(self, target: str, elements_seen: int) -> None:
        super().__init__(
            f"No date control matched {target} ({elements_seen} elements checked)"
        )
        self.target = target
        self.elements_seen = elements_seen


class NoCandidatesFoundError(ScrapingError):
    """Neither structured elements nor the text fallback produced candidates.

    Carries diagnostic counts so the log line explains what was tried.
    """

    def __init__(
        self,
        selectors_tried: list[str],
        elements_seen: int = 0,
        text_length: int = 0,
    ) -> None:
        super().__init__(
            f"No session candidates found after {len(selectors_tried)} selectors"
        )
        self.selectors_tried = selectors_tried
        self.elements_seen = elements_seen
        self.text_length = text_length


class GlobalTimeoutError(ScrapingError):
    """The call-level deadline elapsed before extraction completed."""

    def __init__(self, deadline_seconds: float) -> None:
        super().__init__(f"Extraction exceeded {deadline_seconds}s deadline")
        self.deadline_seconds = deadline_seconds

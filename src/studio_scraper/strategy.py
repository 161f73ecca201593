"""Strategy Selector.

Maps a venue's booking URL to one extraction strategy:
  * Unsupported       - an embed platform this engine cannot automate; the
                        caller gets an empty list and no browser is launched;
  * PlatformSpecific  - a bespoke handler for a known platform layout;
  * Universal         - the heuristic cascade.

select_strategy() is pure; the signature tables below are the only place new
platform support is added.
"""

from dataclasses import dataclass
from typing import Literal, Union

from src.studio_scraper.models import VenueDescriptor
from src.studio_scraper.pages.base import SchedulePage
from src.studio_scraper.pages.mariana import MarianaSchedulePage
from src.studio_scraper.pages.universal import UniversalSchedulePage


@dataclass(frozen=True)
class PlatformSignature:
    """URL fragments identifying one booking platform."""

    platform: str
    url_patterns: tuple[str, ...]

    def matches(self, url: str) -> bool:
        lowered = url.lower()
        return any(pattern in lowered for pattern in self.url_patterns)


@dataclass(frozen=True)
class Unsupported:
    platform: str
    kind: Literal["unsupported"] = "unsupported"

    @property
    def label(self) -> str:
        return self.platform


@dataclass(frozen=True)
class PlatformSpecific:
    platform: str
    handler: type[SchedulePage]
    kind: Literal["platform"] = "platform"

    @property
    def label(self) -> str:
        return self.platform


@dataclass(frozen=True)
class Universal:
    handler: type[SchedulePage] = UniversalSchedulePage
    kind: Literal["universal"] = "universal"

    @property
    def label(self) -> str:
        return "universal"


ExtractionStrategy = Union[Unsupported, PlatformSpecific, Universal]

# Third-party iframe/embed platforms that render behind login walls or
# cross-origin widgets this engine cannot drive reliably
UNSUPPORTED_PLATFORMS: tuple[PlatformSignature, ...] = (
    PlatformSignature("mindbody", ("mindbody", "healcode")),
)

PLATFORM_HANDLERS: tuple[tuple[PlatformSignature, type[SchedulePage]], ...] = (
    (PlatformSignature("mariana", ("marianaiframes.com",)), MarianaSchedulePage),
)


def select_strategy(venue: VenueDescriptor) -> ExtractionStrategy:
    """Pick the extraction strategy for a venue from its booking URL."""
    url = venue.booking_url or ""
    for signature in UNSUPPORTED_PLATFORMS:
        if signature.matches(url):
            return Unsupported(platform=signature.platform)
    for signature, handler in PLATFORM_HANDLERS:
        if signature.matches(url):
            return PlatformSpecific(platform=signature.platform, handler=handler)
    return Universal()

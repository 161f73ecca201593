"""Field Extraction Cascade.

Session data is pulled out of unknown page structures in two stages:

1. collect_candidates() runs one in-page evaluation that finds the session
   elements (first container selector with any hits wins) and snapshots each
   one: the text under every cascade selector, its visible lines, and the
   nearest preceding date header. When no structured element exists,
   build_text_candidates() turns a captured page-text block into one
   TextMatchCandidate per regex-matched session line.
2. extract_fields() walks, per field, an ordered tuple of pure extractor
   functions (platform selectors, generic selectors, text-match groups,
   last-resort heuristics) and keeps the first non-empty value.

validate_date_scope() and the location post-filter run between the two.
"""

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.studio_scraper.dates import DateFormatSet
from src.studio_scraper.location import filter_by_location
from src.studio_scraper.logging import get_logger
from src.studio_scraper.models import (
    Candidate,
    ExtractedFields,
    StructuredCandidate,
    TextMatchCandidate,
)
from src.studio_scraper.session import PageLike

log = get_logger(__name__)

FIELDS: tuple[str, ...] = ("name", "time", "instructor", "duration", "location", "price")

Extractor = Callable[[Candidate], str | None]

GENERIC_SELECTORS: dict[str, tuple[str, ...]] = {
    "name": (
        ".class-name", ".session-name", ".workout-name", ".name",
        '[class*="name"]', "h1", "h2", "h3", "h4", "h5", "h6",
        ".title", '[class*="title"]',
    ),
    "time": (
        ".class-time", ".start-time", ".schedule-time", ".time",
        '[class*="time"]', "time",
    ),
    "instructor": (
        ".class-teacher", ".instructor", '[class*="instructor"]',
        ".teacher", '[class*="teacher"]', ".coach", '[class*="coach"]',
    ),
    "duration": (".duration", '[class*="duration"]', ".length"),
    "location": (
        ".session-studio", ".studio", '[class*="studio"]',
        ".location", '[class*="location"]', ".room", '[class*="room"]',
    ),
    "price": (".price", '[class*="price"]', ".cost"),
}

# Date-strip controls ([data-date] buttons) are not section headers
GENERIC_DATE_HEADER_SELECTORS: tuple[str, ...] = (
    ".schedule-day-header-date",
    '[class*="date-header"]',
    '[class*="day-header"]',
    '[class*="date-title"]',
    "h2",
    "h3",
)

# Lines that are page chrome rather than a class name
_NOISE_WORDS: tuple[str, ...] = (
    "schedule", "book", "menu", "nav", "header", "footer", "login", "sign in",
    "waitlist", "spots left", "full",
)
_TIME_LIKE_RE = re.compile(r"^(?:\d{1,2}:\d{2}|\d{1,2}\s*[ap]\.?m\.?(?![a-z]))", re.IGNORECASE)
_DURATION_LIKE_RE = re.compile(r"^\(?\d{1,3}\s*(min|mins|minutes)\b", re.IGNORECASE)
_HAS_LETTER_RE = re.compile(r"[^\W\d_]")

_TIME_ONLY_RE = re.compile(
    r"^\d{1,2}(?::\d{2})?\s*[ap]\.?m\.?"
    r"(?:\s*(?:-|–|to)\s*\d{1,2}(?::\d{2})?\s*[ap]\.?m\.?)?$",
    re.IGNORECASE,
)
_SESSION_LINE_RE = re.compile(
    r"""^(?P<time>\d{1,2}(?::\d{2})?\s*[ap]\.?m\.?
            (?:\s*(?:-|–|to)\s*\d{1,2}(?::\d{2})?\s*[ap]\.?m\.?)?)
        [\s|•·,-]+
        (?P<name>[^|•·@]+?)
        (?:\s*\(?(?P<duration>\d{1,3}\s*(?:minutes|mins|min)\b)\)?)?
        (?:\s+(?:with|w/)\s+(?P<instructor>[^|•·@]+?))?
        (?:\s*[|•·@]\s*(?P<location>.+?))?
        \s*$""",
    re.IGNORECASE | re.VERBOSE,
)


def selector_extractor(selector: str) -> Extractor:
    """Extractor reading the text a structured candidate captured under `selector`."""

    def extract(candidate: Candidate) -> str | None:
        if isinstance(candidate, StructuredCandidate):
            return candidate.probes.get(selector) or None
        return None

    extract.__name__ = f"selector[{selector}]"
    return extract


def text_group_extractor(field_name: str) -> Extractor:
    """Extractor reading one regex group of a text-match candidate."""

    def extract(candidate: Candidate) -> str | None:
        if isinstance(candidate, TextMatchCandidate):
            return getattr(candidate, field_name, "") or None
        return None

    extract.__name__ = f"text_group[{field_name}]"
    return extract


def _plausible_name(line: str) -> bool:
    if not 3 < len(line) < 100 or not _HAS_LETTER_RE.search(line):
        return False
    if _TIME_LIKE_RE.match(line) or _DURATION_LIKE_RE.match(line):
        return False
    lowered = line.lower()
    return not any(word in lowered for word in _NOISE_WORDS)


def shortest_text_extractor(candidate: Candidate) -> str | None:
    """Last resort for names: the shortest plausible line of the element's text."""
    if not isinstance(candidate, StructuredCandidate):
        return None
    lines = candidate.lines or [candidate.text]
    plausible = [line for line in lines if _plausible_name(line)]
    if not plausible:
        return None
    return min(plausible, key=len)


def duration_in_text_extractor(candidate: Candidate) -> str | None:
    """Duration embedded anywhere in the element text, e.g. "Sculpt (50 min)"."""
    if not isinstance(candidate, StructuredCandidate):
        return None
    match = re.search(r"\(?\d{1,3}\s*(?:minutes|mins|min)\b\)?", candidate.text, re.IGNORECASE)
    return match.group(0) if match else None


@dataclass(frozen=True)
class FieldCascade:
    """Ordered extractor functions per field."""

    extractors: Mapping[str, tuple[Extractor, ...]]
    selectors: tuple[str, ...] = field(default=())

    def extract(self, candidate: Candidate) -> ExtractedFields:
        values: dict[str, str | None] = {}
        for name in FIELDS:
            values[name] = _first_value(candidate, self.extractors.get(name, ()))
        return ExtractedFields(**values)


def _first_value(candidate: Candidate, extractors: Sequence[Extractor]) -> str | None:
    for extractor in extractors:
        value = extractor(candidate)
        if value and value.strip():
            return value.strip()
    return None


def build_cascade(
    platform_selectors: Mapping[str, Sequence[str]] | None = None,
    *,
    generic: bool = True,
) -> FieldCascade:
    """Assemble the per-field extractor order.

    Platform selectors come first, then the generic structural selectors, then
    the text-match group for that field, then the field's heuristics.
    """
    platform_selectors = platform_selectors or {}
    extractors: dict[str, tuple[Extractor, ...]] = {}
    selectors: list[str] = []

    for name in FIELDS:
        ordered: list[str] = list(platform_selectors.get(name, ()))
        if generic:
            ordered += [s for s in GENERIC_SELECTORS.get(name, ()) if s not in ordered]
        chain: list[Extractor] = [selector_extractor(s) for s in ordered]
        chain.append(text_group_extractor(name))
        if name == "name":
            chain.append(shortest_text_extractor)
        elif name == "duration":
            chain.append(duration_in_text_extractor)
        extractors[name] = tuple(chain)
        selectors += [s for s in ordered if s not in selectors]

    return FieldCascade(extractors=extractors, selectors=tuple(selectors))


def extract_fields(candidate: Candidate, cascade: FieldCascade) -> ExtractedFields:
    return cascade.extract(candidate)


_COLLECT_JS = """({containerSelectors, probeSelectors, headerSelectors, maxCandidates}) => {
    const clean = (s) => (s || '').replace(/\\s+/g, ' ').trim();
    const matchesHeader = (node) => headerSelectors.some((sel) => {
        try { return node.matches(sel); } catch (e) { return false; }
    });
    const headerWithin = (node) => {
        for (const sel of headerSelectors) {
            let found = [];
            try { found = node.querySelectorAll(sel); } catch (e) { continue; }
            // Several matches means a date strip or another day list, not one header
            if (found.length === 1) return found[0];
            if (found.length > 1) return null;
        }
        return null;
    };
    const nearestDateHeader = (el) => {
        for (let node = el; node && node !== document.body; node = node.parentElement) {
            for (let sib = node.previousElementSibling; sib; sib = sib.previousElementSibling) {
                const header = matchesHeader(sib) ? sib : headerWithin(sib);
                if (header) {
                    return clean(header.getAttribute('data-date') || '') + ' ' + clean(header.textContent);
                }
            }
        }
        return null;
    };

    let elements = [];
    let usedSelector = null;
    for (const sel of containerSelectors) {
        let found = [];
        try { found = document.querySelectorAll(sel); } catch (e) { continue; }
        if (found.length > 0) {
            elements = Array.from(found);
            usedSelector = sel;
            break;
        }
    }

    const candidates = elements.slice(0, maxCandidates).map((el) => {
        const probes = {};
        for (const sel of probeSelectors) {
            let match = null;
            try { match = el.querySelector(sel); } catch (e) { continue; }
            const text = clean(match && match.textContent);
            if (text) probes[sel] = text;
        }
        const raw = el.innerText || el.textContent || '';
        const context = nearestDateHeader(el);
        return {
            probes,
            text: clean(el.textContent),
            lines: raw.split('\\n').map(clean).filter(Boolean),
            date_context: context ? context.trim() : null,
        };
    });

    return { usedSelector, elementsSeen: elements.length, candidates };
}"""


@dataclass
class CollectedCandidates:
    """Result of the in-page candidate snapshot, with diagnostics for logging."""

    candidates: list[StructuredCandidate]
    used_selector: str | None = None
    elements_seen: int = 0
    selectors_tried: tuple[str, ...] = ()


async def collect_candidates(
    page: PageLike,
    container_selectors: Sequence[str],
    cascade: FieldCascade,
    *,
    header_selectors: Sequence[str] = GENERIC_DATE_HEADER_SELECTORS,
    scoped: bool = False,
    max_candidates: int = 200,
) -> CollectedCandidates:
    """Snapshot session elements on the live page into StructuredCandidates."""
    result: dict[str, Any] = await page.evaluate(
        _COLLECT_JS,
        {
            "containerSelectors": list(container_selectors),
            "probeSelectors": list(cascade.selectors),
            "headerSelectors": list(header_selectors),
            "maxCandidates": max_candidates,
        },
    ) or {}

    candidates = [
        StructuredCandidate(
            probes=item.get("probes") or {},
            text=item.get("text") or "",
            lines=item.get("lines") or [],
            date_context=item.get("date_context") or None,
            scoped=scoped,
        )
        for item in result.get("candidates") or []
    ]
    log.debug(
        "candidates_collected",
        selector=result.get("usedSelector"),
        elements=result.get("elementsSeen", 0),
        candidates=len(candidates),
    )
    return CollectedCandidates(
        candidates=candidates,
        used_selector=result.get("usedSelector"),
        elements_seen=int(result.get("elementsSeen") or 0),
        selectors_tried=tuple(container_selectors),
    )


def build_text_candidates(text: str | None, *, scoped: bool = False) -> list[TextMatchCandidate]:
    """One synthetic candidate per session line found in a raw text block.

    A time on its own line is joined with the line after it, since several
    platforms render the time and the class title as separate fragments.
    """
    if not text:
        return []
    lines = [re.sub(r"\s+", " ", line).strip() for line in text.splitlines()]
    lines = [line for line in lines if line]

    merged: list[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if _TIME_ONLY_RE.match(line) and i + 1 < len(lines):
            merged.append(f"{line} {lines[i + 1]}")
            i += 2
            continue
        merged.append(line)
        i += 1

    candidates: list[TextMatchCandidate] = []
    for line in merged:
        match = _SESSION_LINE_RE.match(line)
        if not match:
            continue
        groups = {k: (v or "").strip() for k, v in match.groupdict().items()}
        candidates.append(TextMatchCandidate(raw=line, scoped=scoped, **groups))
    return candidates


def validate_date_scope(
    candidates: Sequence[Candidate],
    formats: DateFormatSet,
    *,
    allow_unscoped: bool = True,
) -> list[Candidate]:
    """Keep the candidates that can be associated with the target date.

    * a candidate filed under a header naming another date is dropped, unless
      date navigation scoped it and no candidate sits under a target-date
      header (the "header" was then most likely the date strip itself);
    * candidates that were scoped by date navigation, or whose header matches
      the target, are kept, and when any exist only they are kept;
    * otherwise no date signal exists anywhere, and `allow_unscoped` decides
      whether the remaining candidates are kept (with a warning) or dropped.
    """
    header_matched = any(
        isinstance(c, StructuredCandidate) and formats.matches(c.date_context)
        for c in candidates
    )
    remaining: list[Candidate] = []
    other_date = 0
    for candidate in candidates:
        context = candidate.date_context if isinstance(candidate, StructuredCandidate) else None
        if formats.names_other_date(context) and (header_matched or not candidate.scoped):
            other_date += 1
            continue
        remaining.append(candidate)

    confirmed = [
        c
        for c in remaining
        if c.scoped
        or (isinstance(c, StructuredCandidate) and formats.matches(c.date_context))
    ]
    if confirmed:
        if other_date:
            log.debug("date_scope_other_days_dropped", dropped=other_date)
        return confirmed

    if not remaining:
        if other_date:
            log.info("date_section_missing", target=formats.iso, other_days=other_date)
        return []

    if allow_unscoped:
        log.warning(
            "date_scope_unverified",
            target=formats.iso,
            candidates=len(remaining),
        )
        return remaining

    log.info("date_scope_rejected", target=formats.iso, candidates=len(remaining))
    return []


def run_cascade(
    candidates: Sequence[Candidate],
    cascade: FieldCascade,
    *,
    address: str | None = None,
    post_filter: bool = True,
) -> list[ExtractedFields]:
    """Extract fields for every candidate, drop empties, then post-filter by location."""
    extracted = [cascade.extract(c) for c in candidates]
    extracted = [f for f in extracted if f.name or f.time]
    if post_filter:
        extracted = filter_by_location(address, extracted, lambda f: f.location)
    return extracted

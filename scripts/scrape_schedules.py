"""Get a studio's class schedule for one date as JSON or table.

Standalone CLI script around ScheduleExtractor. Picks the extraction
strategy from the booking URL, scrapes the target date, and prints the
normalized records. Diagnostics (structlog) go to stderr.

Run with: python scripts/scrape_schedules.py --url https://studio.example/schedule --date 2025-07-25
Branch:   python scripts/scrape_schedules.py --url URL --date 2025-07-25 --address "123 Main St"
Table:    python scripts/scrape_schedules.py --url URL --date 2025-07-25 --table
Debug:    python scripts/scrape_schedules.py --url URL --date 2025-07-25 --headed
Events:   python scripts/scrape_schedules.py --events https://lu.ma/nyc https://lu.ma/sf --category tech

Exit codes:
  0 = success (JSON or table on stdout; an empty list means nothing could be extracted)
  1 = error (message on stderr)
  2 = invalid arguments (argparse usage on stderr)
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import date

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.studio_scraper.config import get_config  # noqa: E402
from src.studio_scraper.dates import parse_target_date  # noqa: E402
from src.studio_scraper.engine import (  # noqa: E402
    EventDiscovery,
    EventSource,
    ScheduleExtractor,
)
from src.studio_scraper.logging import setup_logging  # noqa: E402
from src.studio_scraper.models import ScrapedClassRecord, VenueDescriptor  # noqa: E402


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Get a studio class schedule for one date as JSON or table.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", help="Booking page URL of the venue.")
    parser.add_argument(
        "--date",
        default=date.today().isoformat(),
        help="Target date, YYYY-MM-DD (default: today).",
    )
    parser.add_argument(
        "--address",
        default=None,
        help="Branch address, used to pick one location on multi-branch pages.",
    )
    parser.add_argument("--name", default="", help="Venue name, for log context only.")
    parser.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable table instead of JSON.",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Launch browser in headed mode (visible window).",
    )
    parser.add_argument(
        "--events",
        nargs="+",
        metavar="URL",
        default=None,
        help="Discover events on these listing pages instead of scraping a schedule.",
    )
    parser.add_argument(
        "--category",
        default="general",
        help="Category assigned to discovered events (with --events).",
    )
    args = parser.parse_args(argv)

    if not args.events and not args.url:
        parser.error("one of --url or --events is required")
    if not args.events:
        try:
            parse_target_date(args.date)
        except ValueError:
            parser.error(f"invalid --date {args.date!r}, expected YYYY-MM-DD")
    return args


def _format_table(records: list[ScrapedClassRecord]) -> str:
    """Format class records as a human-readable table.

    Columns: Time | Class | Instructor | Duration | Location
    """
    if not records:
        return "(no classes extracted)"

    headers = ["Time", "Class", "Instructor", "Duration", "Location"]

    rows = []
    for r in records:
        time_range = r.start_time or "-"
        if r.end_time:
            time_range = f"{time_range} - {r.end_time}"
        rows.append(
            [
                time_range,
                r.name,
                r.instructor or "-",
                f"{r.duration_minutes} min" if r.duration_minutes else "-",
                r.location or "-",
            ]
        )

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)

    row_lines = []
    for row in rows:
        row_lines.append(
            " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row))
        )

    return "\n".join([header_line, separator, *row_lines])


async def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)
    if args.headed:
        config = config.model_copy(update={"headless": False})

    if args.events:
        _log(f"Discovering events on {len(args.events)} page(s)...")
        discovery = EventDiscovery(config)
        events = await discovery.discover(
            [EventSource(url=url, category=args.category) for url in args.events]
        )
        _log(f"Found {len(events)} events")
        print(json.dumps([e.model_dump(mode="json") for e in events], indent=2))
        return

    venue = VenueDescriptor(
        name=args.name,
        booking_url=args.url,
        physical_address=args.address,
    )
    _log(f"Scraping {args.url} for {args.date}...")
    extractor = ScheduleExtractor(config)
    records = await extractor.scrape_classes(venue, args.date)
    _log(f"Extracted {len(records)} classes")

    if args.table:
        print(_format_table(records))
    else:
        print(json.dumps([r.model_dump(mode="json") for r in records], indent=2))


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

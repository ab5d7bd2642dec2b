"""
CLI entry point for pricing, slot search and timeline projection.

Usage:
    python -m booking_engine.cli --config settings.json quote --channel staff \
        --date 2025-03-18 --start 10:00 --hours 3 --materials
    python -m booking_engine.cli --config settings.json --bookings bookings.json \
        slots --cleaner C-1 --channel staff --date 2025-03-18 --hours 2
    python -m booking_engine.cli --config settings.json --bookings bookings.json \
        timeline --date 2025-03-18
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from booking_engine.rules.pricing import resolve_price
from booking_engine.rules.snapshot import ConfigSnapshot
from booking_engine.scheduling.store import InMemoryBookingStore
from booking_engine.scheduling.timeline import project_by_cleaner
from booking_engine.scheduling.workflow import BookingWorkflow
from booking_engine.schemas.booking_schema import Booking, PriceBreakdown
from booking_engine.utils import parse_date

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Price bookings and inspect cleaner schedules."
    )
    parser.add_argument("--config", type=str, required=True,
                        help="Path to a JSON settings export.")
    parser.add_argument("--bookings", type=str, default=None,
                        help="Path to a JSON list of bookings.")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable verbose logging output.")

    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Resolve the price of a booking.")
    quote.add_argument("--channel", required=True)
    quote.add_argument("--date", required=True)
    quote.add_argument("--start", required=True)
    quote.add_argument("--hours", type=float, required=True)
    quote.add_argument("--cleaners", type=int, default=1)
    quote.add_argument("--area", default=None)
    quote.add_argument("--address", default=None)
    quote.add_argument("--materials", action="store_true")

    slots = sub.add_parser("slots", help="List free start times for a cleaner.")
    slots.add_argument("--cleaner", required=True)
    slots.add_argument("--channel", required=True)
    slots.add_argument("--date", required=True)
    slots.add_argument("--hours", type=float, required=True)

    timeline = sub.add_parser("timeline", help="Project a day's bookings per cleaner.")
    timeline.add_argument("--date", required=True)
    timeline.add_argument("--start", default=None)
    timeline.add_argument("--end", default=None)
    return parser


def _load_bookings(path) -> list[Booking]:
    if path is None:
        return []
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [Booking.model_validate(row) for row in data]


def run(argv=None) -> int:
    args = _build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        )

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error("Settings file not found: %s", config_path)
        return 1

    snapshot = ConfigSnapshot.load(config_path)
    store = InMemoryBookingStore()
    for booking in _load_bookings(args.bookings):
        store.insert(booking)

    if args.command == "quote":
        result = resolve_price(
            snapshot, args.channel, args.date, args.start, args.hours,
            cleaner_count=args.cleaners, area_code=args.area,
            with_materials=args.materials, address=args.address,
        )
        if not isinstance(result, PriceBreakdown):
            sys.stdout.write(result.message + "\n")
            return 2
        sys.stdout.write(result.model_dump_json(indent=2) + "\n")
        return 0

    if args.command == "slots":
        workflow = BookingWorkflow(store, snapshot)
        slots = workflow.available_slots(args.cleaner, args.channel, args.date, args.hours)
        sys.stdout.write(json.dumps([s.strftime("%H:%M") for s in slots]) + "\n")
        return 0

    rows = project_by_cleaner(
        store.bookings_on(parse_date(args.date)), visible_start=args.start, visible_end=args.end,
    )
    output = {
        cleaner_id: [
            {
                "booking_id": entry.booking_id,
                "left_pct": round(entry.as_percentages()[0], 2),
                "width_pct": round(entry.as_percentages()[1], 2),
                "clipped": entry.clipped,
            }
            for entry in projection
        ]
        for cleaner_id, projection in rows.items()
    }
    sys.stdout.write(json.dumps(output, indent=2) + "\n")
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()

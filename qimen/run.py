"""
CLI wrapper for compute_chart().

Usage:
    python3 qimen/run.py --date YYYY-MM-DD --time HH:MM \
        [--lunar] [--leap-month] [--granularity hour|day|month|year] \
        [--style flying|rotating] [--method pair|elapsed_days] \
        [--latitude LAT --longitude LON] [--verbose]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from qimen.chart import ChartRequest, compute_chart
from qimen.errors import QimenError
from qimen.logging_config import setup_logging
from qimen.periods import ChartGranularity, SubPeriodMethod
from qimen.plates import ChartStyle


def _parse_date(text: str) -> tuple:
    try:
        year, month, day = (int(part) for part in text.split("-"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {text!r}") from None
    return year, month, day


def _parse_time(text: str) -> tuple:
    try:
        hour, minute = (int(part) for part in text.split(":"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected HH:MM, got {text!r}") from None
    return hour, minute


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute a Qimen Dunjia chart.")
    parser.add_argument("--date", required=True, type=_parse_date,
                        help="YYYY-MM-DD, solar unless --lunar is given")
    parser.add_argument("--time", required=True, type=_parse_time, help="HH:MM local time")
    parser.add_argument("--lunar", action="store_true", help="read --date as a lunar date")
    parser.add_argument("--leap-month", dest="leap_month", action="store_true",
                        help="with --lunar: the month is the leap month")
    parser.add_argument("--granularity", default="hour",
                        choices=[g.value for g in ChartGranularity])
    parser.add_argument("--style", default=None, choices=[s.value for s in ChartStyle])
    parser.add_argument("--method", default=None, choices=[m.value for m in SubPeriodMethod])
    parser.add_argument("--latitude", type=float, default=None)
    parser.add_argument("--longitude", type=float, default=None,
                        help="read day and hour pillars from true solar time at this longitude")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--log-file", dest="log_file", default=None)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    year, month, day = args.date
    hour, minute = args.time
    request = ChartRequest(
        year=year,
        month=month,
        day=day,
        hour=hour,
        minute=minute,
        is_lunar=args.lunar,
        leap_month=args.leap_month,
        granularity=args.granularity,
        style=args.style,
        sub_period_method=args.method,
        latitude=args.latitude,
        longitude=args.longitude,
    )

    try:
        result = compute_chart(request)
    except (QimenError, ValueError) as exc:
        logging.getLogger("qimen.run").error("%s", exc)
        return 1

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Team Metrics Command Line

Loads a ticket export plus optional role and sprint tables, runs the metrics
engine and writes the result as JSON (to a file, or stdout).

Usage:
    teamlight-metrics --tickets export.xlsx --roles roles.csv --sprints sprints.csv
    teamlight-metrics --tickets export.csv --strict --output .tmp/metrics.json
    python -m teamlight.run_metrics --tickets export.csv --period 2q --as-of 2024-06-30

Exit codes:
    0  Success
    1  Unreadable input, missing columns or invalid configuration
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from teamlight.config import get_settings, parse_project_list
from teamlight.core import get_logger, setup_logging
from teamlight.domain.thresholds import load_thresholds
from teamlight.engine.filters import TicketFilter, TimePeriod
from teamlight.engine.pipeline import TeamMetricsEngine, serialize_result
from teamlight.errors import ConfigurationError, InputFormatError
from teamlight.ingestion import load_role_table, load_sprint_calendar, load_ticket_records
from teamlight.utils.atomic_json import atomic_json_save
from teamlight.utils.datetime_utils import parse_date

logger = get_logger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Compute team delivery metrics from a ticket export")

    parser.add_argument("--tickets", type=Path, required=True, help="Ticket export (.csv, .xlsx or .xls)")
    parser.add_argument("--roles", type=Path, help="Role/capacity table")
    parser.add_argument("--sprints", type=Path, help="Sprint calendar")
    parser.add_argument("--thresholds", type=Path, help="JSON file of threshold overrides")
    parser.add_argument(
        "--strict", action="store_true", help="Drop tickets of contributors missing from the role table"
    )
    parser.add_argument(
        "--date-driven-projects", help="Comma-separated projects whose sprints are assigned from dates"
    )
    parser.add_argument(
        "--period",
        choices=[p.value for p in TimePeriod],
        help="Only closed tickets within the last 1, 2 or 3 quarters (or all closed tickets)",
    )
    parser.add_argument("--as-of", help="End date of the --period window (default: latest close date)")
    parser.add_argument("--output", type=Path, help="Write JSON here instead of stdout")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines on stderr")

    return parser.parse_args(argv)


def _ticket_filter(args: argparse.Namespace) -> TicketFilter | None:
    if args.period is None:
        return None
    as_of = None
    if args.as_of:
        as_of = parse_date(args.as_of)
        if as_of is None:
            raise ConfigurationError(f"--as-of is not a valid date: {args.as_of!r}")
    return TicketFilter(time_period=TimePeriod(args.period), as_of=as_of)


def main(argv: list[str] | None = None) -> int:
    """
    Entry point when run from the command line.

    Returns:
        Process exit code
    """
    args = parse_arguments(argv)

    try:
        settings = get_settings()
        overrides: dict = {}
        if args.strict:
            overrides["strict_roles"] = True
        if args.date_driven_projects is not None:
            overrides["date_driven_projects"] = parse_project_list(args.date_driven_projects)
        if args.thresholds is not None:
            overrides["thresholds_file"] = args.thresholds
        if args.log_level:
            overrides["log_level"] = args.log_level
        if args.json_logs:
            overrides["json_logs"] = True
        settings = replace(settings, **overrides)

        setup_logging(level=settings.log_level, json_output=settings.json_logs)

        thresholds = load_thresholds(settings.thresholds_file)
        ticket_filter = _ticket_filter(args)

        records = load_ticket_records(args.tickets)
        role_table = load_role_table(args.roles) if args.roles else []
        calendar = load_sprint_calendar(args.sprints) if args.sprints else []
    except (InputFormatError, ConfigurationError, FileNotFoundError) as e:
        logger.error(f"Cannot start metrics run: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    engine = TeamMetricsEngine(role_table, calendar, thresholds, settings)
    result = engine.run(records, ticket_filter)
    payload = serialize_result(result)

    if args.output:
        atomic_json_save(payload, args.output)
        logger.info("Metrics written", extra={"path": str(args.output)})
    else:
        print(json.dumps(payload, indent=2))

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Data Loading Module for ticket exports, role tables and sprint calendars

Reads CSV/Excel tables with pandas, resolves column name variants and turns
rows into immutable domain objects. Values are kept as text here; parsing
and validation of ticket fields happens in the normalizer.

Functions:
    read_table: Read a .csv/.xlsx/.xls file into a string DataFrame
    find_column_variant: Find a column by any of its accepted names
    records_from_dataframe / load_ticket_records: Ticket export -> RawRecord list
    roles_from_dataframe / load_role_table: Role table -> RoleCapacityEntry list
    calendar_from_dataframe / load_sprint_calendar: Calendar -> SprintCalendarEntry list
    validate_role_table: Report duplicate names, bad multipliers and empty names
"""

import math
import re
from collections import Counter
from pathlib import Path

import pandas as pd

from teamlight.core import get_logger
from teamlight.domain.constants import role_defaults
from teamlight.domain.roster import CapacityMetric, RoleCapacityEntry, SprintCalendarEntry, normalize_role
from teamlight.domain.ticket import RawRecord
from teamlight.errors import InputFormatError
from teamlight.utils.datetime_utils import parse_date
from teamlight.utils.error_handling import log_and_continue, log_and_return_default

logger = get_logger(__name__)

SUPPORTED_SUFFIXES = {".csv", ".xlsx", ".xls"}

# First run of digits: "Sprint 3 (2024)" is sprint 3
_LEADING_NUMBER = re.compile(r"(\d+)")

# RawRecord field -> accepted column names
TICKET_COLUMNS: dict[str, list[str]] = {
    "assignee": ["Assignee"],
    "status": ["Status"],
    "story_points": ["Story Points", "Story Point", "SP"],
    "type": ["Type"],
    "project": ["Project"],
    "sprint_closed": ["Sprint Closed"],
    "sprint_created": ["Sprint Created"],
    "created_at": ["Created At", "Created"],
    "updated_at": ["Updated At", "Updated"],
    "start_date": ["Start Date", "Start"],
    "due_date": ["Due Date", "Finish Date", "End Date"],
    "subject": ["Subject", "Title"],
    "parent": ["Parent"],
    "role_hint": ["Function", "Role", "Position"],
    "multiplier_hint": ["Multiplier", "Formula"],
    "record_id": ["ID", "Id", "#"],
}
TICKET_REQUIRED = ("assignee", "status", "created_at")

ROLE_COLUMNS: dict[str, list[str]] = {
    "name": ["Name", "Nama"],
    "position": ["Position", "Posisi", "Role", "Function"],
    "multiplier": ["Formula", "Multiplier"],
    "capacity": ["Capacity", "Kapasitas"],
    "metric": ["Metric", "Metrik"],
}
ROLE_REQUIRED = ("name",)

CALENDAR_COLUMNS: dict[str, list[str]] = {
    "sprint": ["Sprint", "Sprint Number", "Sprint No"],
    "project": ["Project"],
    "start_date": ["Start Date", "Start"],
    "end_date": ["End Date", "End"],
}
CALENDAR_REQUIRED = ("sprint", "project", "start_date", "end_date")


def read_table(file_path: str | Path) -> pd.DataFrame:
    """
    Read a CSV or Excel file with every column as text.

    Blank cells become None. Spreadsheet placeholders such as "#N/A" are kept
    verbatim so downstream parsing can recognise them.

    Args:
        file_path: Path to a .csv, .xlsx or .xls file

    Returns:
        pd.DataFrame with stripped column names

    Raises:
        FileNotFoundError: If the file does not exist
        InputFormatError: If the suffix is unsupported or the file cannot be parsed
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise InputFormatError(f"Unsupported file type '{suffix}'. Supported: {sorted(SUPPORTED_SUFFIXES)}")

    logger.info(f"Reading {path.name}")
    try:
        if suffix == ".csv":
            df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
        else:
            df = pd.read_excel(path, dtype=str, engine="openpyxl" if suffix == ".xlsx" else "xlrd")
    except (ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise InputFormatError(f"Cannot parse {path.name}: {e}") from e

    df.columns = [str(col).strip() for col in df.columns]
    logger.info(f"Loaded {len(df)} rows from {path.name}")
    return df


def find_column_variant(df: pd.DataFrame, column_variants: list[str]) -> str | None:
    """
    Find a column that matches one of the provided variants.

    Matching ignores case and surrounding whitespace. Variants are tried in
    order, so the first listed name wins when several are present.

    Args:
        df: DataFrame to search in
        column_variants: Accepted column names

    Returns:
        Actual column name, or None if not found
    """
    by_key = {str(col).strip().lower(): str(col) for col in df.columns}
    for variant in column_variants:
        match = by_key.get(variant.strip().lower())
        if match is not None:
            return match
    return None


def _resolve_columns(
    df: pd.DataFrame, aliases: dict[str, list[str]], required: tuple[str, ...], table: str
) -> dict[str, str]:
    """
    Map logical field names to the DataFrame's actual columns.

    Raises:
        InputFormatError: If a required field has no matching column
    """
    resolved: dict[str, str] = {}
    for field_name, variants in aliases.items():
        column = find_column_variant(df, variants)
        if column is not None:
            resolved[field_name] = column

    missing = [aliases[name][0] for name in required if name not in resolved]
    if missing:
        raise InputFormatError(
            f"{table} is missing required columns: {missing}\nAvailable columns: {list(df.columns)}"
        )
    return resolved


def _cell(row: pd.Series, column: str | None) -> str | None:
    """Stripped cell text, None for absent columns and blank cells."""
    if column is None:
        return None
    value = row[column]
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip()
    return text or None


def records_from_dataframe(df: pd.DataFrame) -> list[RawRecord]:
    """
    Convert a ticket export DataFrame into RawRecords.

    Args:
        df: Ticket export with at least Assignee, Status and Created At columns

    Returns:
        One RawRecord per row, numbered from 1

    Raises:
        InputFormatError: If required columns are missing
    """
    columns = _resolve_columns(df, TICKET_COLUMNS, TICKET_REQUIRED, "Ticket export")
    records = []
    for position, (_, row) in enumerate(df.iterrows(), start=1):
        values = {field_name: _cell(row, columns.get(field_name)) for field_name in TICKET_COLUMNS}
        records.append(RawRecord(row=position, **values))
    return records


def load_ticket_records(file_path: str | Path) -> list[RawRecord]:
    """Read a ticket export file into RawRecords."""
    return records_from_dataframe(read_table(file_path))


def _parse_multiplier(text: str | None) -> float:
    if text is None:
        return role_defaults.DEFAULT_MULTIPLIER
    try:
        value = float(text.replace(",", "."))
    except ValueError as e:
        return log_and_return_default(
            logger,
            e,
            context={"multiplier": text},
            default_value=role_defaults.DEFAULT_MULTIPLIER,
            error_type="Multiplier parsing",
        )
    return value if math.isfinite(value) else role_defaults.DEFAULT_MULTIPLIER


def _parse_capacity(text: str | None) -> float | None:
    if text is None:
        return None
    try:
        value = float(text.replace(",", "."))
    except ValueError:
        return None
    return value if math.isfinite(value) and value > 0 else None


def roles_from_dataframe(df: pd.DataFrame) -> list[RoleCapacityEntry]:
    """
    Convert a role/capacity table into RoleCapacityEntries.

    Positions are normalized to canonical roles (blank -> default role);
    unparseable multipliers become 1.0; non-positive capacities are dropped.
    Rows with an empty name are skipped with a warning.

    Raises:
        InputFormatError: If the Name column is missing
    """
    columns = _resolve_columns(df, ROLE_COLUMNS, ROLE_REQUIRED, "Role table")
    entries = []
    for position, (_, row) in enumerate(df.iterrows(), start=1):
        name = _cell(row, columns["name"])
        if name is None:
            logger.warning("Skipping role table row without a name", extra={"row": position})
            continue

        entries.append(
            RoleCapacityEntry(
                name=name,
                role=normalize_role(_cell(row, columns.get("position"))) or role_defaults.DEFAULT_ROLE,
                multiplier=_parse_multiplier(_cell(row, columns.get("multiplier"))),
                capacity=_parse_capacity(_cell(row, columns.get("capacity"))),
                capacity_metric=CapacityMetric.parse(_cell(row, columns.get("metric"))),
            )
        )
    return entries


def load_role_table(file_path: str | Path) -> list[RoleCapacityEntry]:
    """Read a role/capacity table file and log any validation problems."""
    entries = roles_from_dataframe(read_table(file_path))
    for problem in validate_role_table(entries):
        logger.warning(f"Role table: {problem}")
    return entries


def calendar_from_dataframe(df: pd.DataFrame) -> list[SprintCalendarEntry]:
    """
    Convert a sprint calendar table into SprintCalendarEntries.

    Rows with a non-numeric or non-positive sprint number, unparseable dates
    or an end before the start are skipped with a warning.

    Returns:
        Entries ordered by project, then sprint number

    Raises:
        InputFormatError: If required columns are missing
    """
    columns = _resolve_columns(df, CALENDAR_COLUMNS, CALENDAR_REQUIRED, "Sprint calendar")
    entries = []
    for position, (_, row) in enumerate(df.iterrows(), start=1):
        sprint_text = _cell(row, columns["sprint"])
        project = _cell(row, columns["project"])
        try:
            if sprint_text is None or project is None:
                raise ValueError("sprint number and project are required")
            digits = _LEADING_NUMBER.search(sprint_text)
            if digits is None:
                raise ValueError(f"no sprint number in {sprint_text!r}")
            start = parse_date(_cell(row, columns["start_date"]))
            end = parse_date(_cell(row, columns["end_date"]))
            if start is None or end is None:
                raise ValueError("start and end dates must be valid dates")
            entries.append(SprintCalendarEntry(int(digits.group(1)), project, start, end))
        except ValueError as e:
            log_and_continue(logger, e, context={"row": position}, error_type="Sprint calendar row")

    return sorted(entries, key=lambda entry: (entry.project.lower(), entry.sprint_number))


def load_sprint_calendar(file_path: str | Path) -> list[SprintCalendarEntry]:
    """Read a sprint calendar file."""
    return calendar_from_dataframe(read_table(file_path))


def validate_role_table(entries: list[RoleCapacityEntry]) -> list[str]:
    """
    Check a role/capacity table for problems.

    Args:
        entries: Parsed role table

    Returns:
        Human-readable problems (empty when the table is clean):
        duplicate names, multipliers outside [0, 5], empty names
    """
    problems: list[str] = []

    counts = Counter(entry.key for entry in entries if entry.key)
    for name, count in counts.items():
        if count > 1:
            problems.append(f"Duplicate name found: {name} (appears {count} times)")

    for entry in entries:
        if not 0 <= entry.multiplier <= role_defaults.MAX_MULTIPLIER:
            problems.append(
                f"Invalid multiplier for {entry.name}: {entry.multiplier} "
                f"(should be between 0 and {role_defaults.MAX_MULTIPLIER:g})"
            )

    empty = sum(1 for entry in entries if not entry.name.strip())
    if empty:
        problems.append(f"{empty} entries have empty names")

    return problems

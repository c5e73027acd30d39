"""
Record normalization: RawRecord -> Ticket.

Covers story point parsing, type classification, defect/rework detection,
cycle time estimation and Feature parent/child linkage. A record that
cannot be normalized raises RecordParseError; normalize_records() logs and
skips it without aborting the batch.
"""

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date

from teamlight.core import get_logger
from teamlight.domain.constants import cycle_time_config, sprint_config, ticket_defaults
from teamlight.domain.ticket import NormalizedType, RawRecord, Ticket
from teamlight.engine.role_resolver import RoleResolver
from teamlight.engine.sprint_resolver import SprintResolver, effective_close, effective_start, sprint_number
from teamlight.errors import RecordParseError
from teamlight.utils.datetime_utils import days_between, parse_date
from teamlight.utils.error_handling import log_and_continue

logger = get_logger(__name__)

_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")

_TYPE_VOCABULARY: dict[str, NormalizedType] = {
    "feature": NormalizedType.FEATURE,
    "epic": NormalizedType.FEATURE,
    "bug": NormalizedType.BUG,
    "regression": NormalizedType.REGRESSION,
    "improvement": NormalizedType.IMPROVEMENT,
    "release": NormalizedType.RELEASE,
    "task": NormalizedType.TASK,
}

CycleCandidate = tuple[str, int | None]


def parse_story_points(text: str | None) -> int:
    """
    Leading integer of the story point cell.

    Examples:
        >>> parse_story_points("5")
        5
        >>> parse_story_points("3.7")
        3
        >>> parse_story_points("n/a")
        0
    """
    if not text:
        return 0
    match = _LEADING_INTEGER.match(text)
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def normalize_type(raw_type: str | None) -> NormalizedType:
    """Case-insensitive vocabulary match; anything mentioning "bug" is a Bug."""
    text = (raw_type or "").strip().lower()
    if text in _TYPE_VOCABULARY:
        return _TYPE_VOCABULARY[text]
    if "bug" in text:
        return NormalizedType.BUG
    return NormalizedType.OTHER


def detect_defect(normalized_type: NormalizedType, raw_type: str) -> bool:
    return normalized_type is NormalizedType.BUG or "bug" in raw_type.lower()


def detect_rework(subject: str) -> bool:
    return "revise" in subject.lower()


def is_valid_cycle(days: int | None) -> bool:
    return days is not None and cycle_time_config.MIN_DAYS <= days <= cycle_time_config.MAX_DAYS


def estimate_cycle_days(
    candidates: Sequence[CycleCandidate],
    has_close: bool,
    is_valid: Callable[[int | None], bool] = is_valid_cycle,
) -> int | None:
    """
    Shortest valid cycle time estimate.

    Args:
        candidates: (method name, day count or None) pairs
        has_close: Whether the ticket has an effective close date
        is_valid: Predicate a candidate must satisfy to be considered

    Returns:
        Minimum valid candidate; the default closed cycle time when a close
        date exists but no candidate is valid; None without a close date

    Example:
        >>> estimate_cycle_days([("start", 4), ("created", 9), ("sprint_span", 14)], has_close=True)
        4
    """
    if not has_close:
        return None
    valid = [days for _, days in candidates if is_valid(days)]
    if not valid:
        return cycle_time_config.DEFAULT_CLOSED_DAYS
    return min(valid)


def sprint_span_days(sprint_created: str, sprint_closed: str) -> int | None:
    """Days covered by the sprints from creation to close, inclusive; None if either label has no number."""
    first = sprint_number(sprint_created)
    last = sprint_number(sprint_closed)
    if first is None or last is None or last < first:
        return None
    return (last - first + 1) * sprint_config.LENGTH_DAYS


def cycle_candidates(
    start_at: date, created_at: date, closed_at: date | None, sprint_created: str, sprint_closed: str
) -> list[CycleCandidate]:
    return [
        ("effective_start", days_between(start_at, closed_at)),
        ("created", days_between(created_at, closed_at)),
        ("sprint_span", sprint_span_days(sprint_created, sprint_closed)),
    ]


def _identity(record: RawRecord, normalized_type: NormalizedType, raw_type: str) -> tuple[str, str | None]:
    """(ticket id, parent id) for a record; ids are derived from row position so reruns match."""
    synthesized = f"{ticket_defaults.ID_PREFIX}-{record.row:05d}"
    if normalized_type is NormalizedType.FEATURE:
        return record.parent or record.record_id or synthesized, None
    if record.parent:
        return f"{record.parent}-{raw_type.upper()}-{record.row:05d}", record.parent
    return synthesized, None


def normalize_record(
    record: RawRecord, sprint_resolver: SprintResolver, role_resolver: RoleResolver
) -> Ticket | None:
    """
    Convert one raw record into a Ticket.

    Args:
        record: Raw export row
        sprint_resolver: Sprint label resolution for this run
        role_resolver: Role resolution for this run

    Returns:
        Ticket, or None if strict role resolution drops the record

    Raises:
        RecordParseError: If Created At is missing or not a valid date
    """
    created_at = parse_date(record.created_at)
    if created_at is None:
        raise RecordParseError(f"invalid or missing Created At: {record.created_at!r}", row=record.row)

    raw_type = record.type or ticket_defaults.DEFAULT_TYPE
    normalized_type = normalize_type(raw_type)
    is_feature = normalized_type is NormalizedType.FEATURE

    assignment = role_resolver.resolve(record, is_feature)
    if assignment is None:
        return None

    status = record.status or ""
    project = record.project or ticket_defaults.UNKNOWN_PROJECT
    subject = record.subject or ""

    start_at = effective_start(created_at, parse_date(record.start_date))
    due = parse_date(record.due_date)
    closed_at = effective_close(status, due, parse_date(record.updated_at))

    sprint_label = sprint_resolver.resolve_closed(project, record.sprint_closed, start_at, due, closed_at)
    sprint_created = sprint_resolver.resolve_created(project, record.sprint_created, start_at)

    cycle_days = estimate_cycle_days(
        cycle_candidates(start_at, created_at, closed_at, sprint_created, sprint_label),
        has_close=closed_at is not None,
    )

    ticket_id, parent_id = _identity(record, normalized_type, raw_type)

    return Ticket(
        id=ticket_id,
        title=subject,
        assignee=record.assignee or ticket_defaults.UNASSIGNED_ASSIGNEE,
        role=assignment.role,
        status=status,
        story_points=parse_story_points(record.story_points),
        raw_type=raw_type,
        normalized_type=normalized_type,
        project=project,
        sprint_label=sprint_label,
        sprint_created=sprint_created,
        created_at=created_at,
        start_at=start_at,
        closed_at=closed_at,
        is_defect=detect_defect(normalized_type, raw_type),
        is_rework=detect_rework(subject),
        cycle_days=cycle_days,
        parent_id=parent_id,
        multiplier=assignment.multiplier,
    )


@dataclass(frozen=True)
class NormalizationResult:
    """
    Attributes:
        tickets: Normalized tickets in input order
        skipped_records: Malformed records that were logged and skipped
        dropped_records: Records dropped by strict role resolution
    """

    tickets: tuple[Ticket, ...]
    skipped_records: int = 0
    dropped_records: int = 0


def link_parents(tickets: Sequence[Ticket]) -> list[Ticket]:
    """Clear parent references that do not name a Feature ticket in the set."""
    feature_ids = {ticket.id for ticket in tickets if ticket.is_feature}
    linked = []
    for ticket in tickets:
        if ticket.parent_id is not None and ticket.parent_id not in feature_ids:
            logger.debug(
                "Clearing dangling parent reference",
                extra={"ticket_id": ticket.id, "parent_id": ticket.parent_id},
            )
            ticket = replace(ticket, parent_id=None)
        linked.append(ticket)
    return linked


def normalize_records(
    records: Iterable[RawRecord], sprint_resolver: SprintResolver, role_resolver: RoleResolver
) -> NormalizationResult:
    """
    Normalize a batch of records.

    Malformed records are logged and counted, never raised. Parent links are
    validated once the whole batch is normalized.
    """
    tickets: list[Ticket] = []
    skipped = 0
    dropped = 0

    for record in records:
        try:
            ticket = normalize_record(record, sprint_resolver, role_resolver)
        except (RecordParseError, ValueError) as e:
            skipped += 1
            log_and_continue(
                logger,
                e,
                context={"row": record.row, "assignee": record.assignee},
                error_type="Record normalization",
            )
            continue

        if ticket is None:
            dropped += 1
            logger.info(
                "Dropping record of contributor missing from role table",
                extra={"row": record.row, "assignee": record.assignee},
            )
            continue

        tickets.append(ticket)

    return NormalizationResult(tickets=tuple(link_parents(tickets)), skipped_records=skipped, dropped_records=dropped)

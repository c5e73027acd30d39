"""
Role and seniority multiplier resolution.

Each contributor's role comes from the first resolver in an ordered chain
that returns a result:

    1. role/capacity table (exact, case-insensitive name match)
    2. role hint exported on the record (multiplier hint or 1.0)
    3. "[...] ROLE - ..." marker in the subject (multiplier 1.0)
    4. hard default role (multiplier 1.0, warning logged once per contributor)

Feature tickets skip the chain and always get the fixed Feature role.
"""

import math
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from teamlight.core import get_logger
from teamlight.domain.constants import role_defaults
from teamlight.domain.roster import ROLE_ALIASES, CapacityMetric, RoleCapacityEntry, normalize_role
from teamlight.domain.ticket import RawRecord

logger = get_logger(__name__)

# "[Orion] BE - Payment webhook" -> "BE"
_SUBJECT_ROLE_MARKER = re.compile(r"^\s*\[[^\]]*\]\s*([A-Za-z][A-Za-z ]*?)\s*-\s")


@dataclass(frozen=True)
class RoleAssignment:
    """
    Resolved role for one record.

    Attributes:
        role: Canonical role
        multiplier: Seniority multiplier (> 0)
        source: Resolver that produced it: table, hint, subject, default or feature
        capacity: Configured capacity from the role table
        capacity_metric: Capacity basis from the role table
    """

    role: str
    multiplier: float
    source: str
    capacity: float | None = None
    capacity_metric: CapacityMetric | None = None


class RoleDirectory:
    """Case-insensitive name index over the role/capacity table; the first entry wins on duplicates."""

    def __init__(self, entries: Iterable[RoleCapacityEntry] = ()) -> None:
        self._by_key: dict[str, RoleCapacityEntry] = {}
        for entry in entries:
            if entry.key:
                self._by_key.setdefault(entry.key, entry)

    def lookup(self, name: str | None) -> RoleCapacityEntry | None:
        if not name:
            return None
        return self._by_key.get(name.strip().lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._by_key)


RoleResolverFn = Callable[[RawRecord, RoleDirectory], RoleAssignment | None]


def _positive_multiplier(value: float | None) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        return role_defaults.DEFAULT_MULTIPLIER
    return value


def parse_multiplier_hint(text: str | None) -> float:
    """Multiplier from a record hint; blank, invalid or non-positive text gives the default."""
    if not text:
        return role_defaults.DEFAULT_MULTIPLIER
    try:
        return _positive_multiplier(float(text.replace(",", ".")))
    except ValueError:
        return role_defaults.DEFAULT_MULTIPLIER


def from_role_table(record: RawRecord, directory: RoleDirectory) -> RoleAssignment | None:
    entry = directory.lookup(record.assignee)
    if entry is None:
        return None
    return RoleAssignment(
        role=entry.role,
        multiplier=_positive_multiplier(entry.multiplier),
        source="table",
        capacity=entry.capacity,
        capacity_metric=entry.capacity_metric,
    )


def from_record_hint(record: RawRecord, directory: RoleDirectory) -> RoleAssignment | None:
    role = normalize_role(record.role_hint)
    if role is None:
        return None
    return RoleAssignment(role=role, multiplier=parse_multiplier_hint(record.multiplier_hint), source="hint")


def from_subject_marker(record: RawRecord, directory: RoleDirectory) -> RoleAssignment | None:
    """Only known role markers count; arbitrary bracketed prefixes are ignored."""
    if not record.subject:
        return None
    match = _SUBJECT_ROLE_MARKER.match(record.subject)
    if not match:
        return None
    marker = " ".join(match.group(1).upper().split())
    if marker not in ROLE_ALIASES:
        return None
    return RoleAssignment(role=ROLE_ALIASES[marker], multiplier=role_defaults.DEFAULT_MULTIPLIER, source="subject")


def from_default(record: RawRecord, directory: RoleDirectory) -> RoleAssignment:
    return RoleAssignment(
        role=role_defaults.DEFAULT_ROLE, multiplier=role_defaults.DEFAULT_MULTIPLIER, source="default"
    )


RESOLVER_CHAIN: tuple[RoleResolverFn, ...] = (
    from_role_table,
    from_record_hint,
    from_subject_marker,
    from_default,
)

FEATURE_ASSIGNMENT = RoleAssignment(
    role=role_defaults.FEATURE_ROLE, multiplier=role_defaults.DEFAULT_MULTIPLIER, source="feature"
)


def resolve_role(
    record: RawRecord, directory: RoleDirectory, chain: tuple[RoleResolverFn, ...] = RESOLVER_CHAIN
) -> RoleAssignment | None:
    """First non-None result of the chain (None only if the chain has no catch-all)."""
    for resolver in chain:
        assignment = resolver(record, directory)
        if assignment is not None:
            return assignment
    return None


class RoleResolver:
    """
    Per-run role resolution with warning bookkeeping.

    In strict mode only table matches are accepted; other non-Feature
    records resolve to None and the caller drops them.

    Attributes:
        warned: Contributors that fell through to the default role, in first-seen order
    """

    def __init__(self, entries: Iterable[RoleCapacityEntry] = (), strict: bool = False) -> None:
        self.directory = RoleDirectory(entries)
        self.strict = strict
        self.warned: list[str] = []

    def resolve(self, record: RawRecord, is_feature: bool) -> RoleAssignment | None:
        if is_feature:
            return FEATURE_ASSIGNMENT

        if self.strict:
            return from_role_table(record, self.directory)

        assignment = resolve_role(record, self.directory)
        if assignment is not None and assignment.source == "default":
            self._warn_default(record.assignee or "")
        return assignment

    def _warn_default(self, assignee: str) -> None:
        if assignee in self.warned:
            return
        self.warned.append(assignee)
        logger.warning(
            f"No role configured for '{assignee}', defaulting to {role_defaults.DEFAULT_ROLE}",
            extra={"assignee": assignee, "default_role": role_defaults.DEFAULT_ROLE},
        )

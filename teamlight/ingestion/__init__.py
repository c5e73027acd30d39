"""
Ingestion - Tabular input loaders

Usage:
    from teamlight.ingestion import load_ticket_records, load_role_table, load_sprint_calendar

    records = load_ticket_records("export.csv")
"""

from .loaders import (
    find_column_variant,
    load_role_table,
    load_sprint_calendar,
    load_ticket_records,
    read_table,
    validate_role_table,
)

__all__ = [
    "find_column_variant",
    "load_role_table",
    "load_sprint_calendar",
    "load_ticket_records",
    "read_table",
    "validate_role_table",
]

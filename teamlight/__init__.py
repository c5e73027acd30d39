"""
Teamlight - Ticket Normalization and Team Metrics Engine

Turns exported work-tracking records into per-contributor and per-function
performance signals: velocity, quality rates, utilization and alerts.

Package Structure:
    - core: Infrastructure (logging)
    - domain: Domain models (Ticket, ContributorMetrics, Alert, Thresholds)
    - utils: Date parsing, statistics, error handling helpers
    - ingestion: Tabular loaders for tickets, role tables and sprint calendars
    - engine: Normalization, aggregation, scoring and alerting stages
"""

__version__ = "0.1.0"
__author__ = "Engineering Metrics Team"

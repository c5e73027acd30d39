"""Shared helpers: date parsing, statistics, error handling, JSON persistence."""

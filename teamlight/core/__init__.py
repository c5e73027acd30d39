"""
Core Infrastructure - Logging and Configuration

Usage:
    from teamlight.core import get_logger, get_settings

    logger = get_logger(__name__)
    settings = get_settings()
"""

from ..config import EngineSettings, get_settings
from ..errors import ConfigurationError
from .logging_config import get_logger, log_with_context, setup_logging

__all__ = [
    # Configuration
    "get_settings",
    "EngineSettings",
    "ConfigurationError",
    # Logging
    "get_logger",
    "log_with_context",
    "setup_logging",
]

"""
Engine Configuration Management

Provides validated runtime settings for the metrics engine, read from the
environment (optionally seeded from a ``.env`` file).

Usage:
    from teamlight.config import get_settings

    settings = get_settings()
    print(settings.date_driven_projects)
    print(settings.strict_roles)

Environment variables:
    TEAMLIGHT_DATE_DRIVEN_PROJECTS  Comma-separated projects whose sprints come from dates
    TEAMLIGHT_STRICT_ROLES          Drop tickets of contributors missing from the role table
    TEAMLIGHT_LOG_LEVEL             DEBUG, INFO, WARNING, ERROR or CRITICAL
    TEAMLIGHT_LOG_JSON              Emit JSON logs on the console
    TEAMLIGHT_THRESHOLDS_FILE       Optional JSON file with threshold overrides

Raises:
    ConfigurationError: If a setting is present but invalid
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from teamlight.errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def parse_bool(raw: str | None, name: str) -> bool:
    """
    Interpret an environment flag.

    Raises:
        ConfigurationError: If the value is not a recognised boolean
    """
    value = (raw or "").strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean (true/false), got {raw!r}")


def parse_project_list(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated project list, dropping blanks and duplicates."""
    if not raw:
        return ()
    projects: list[str] = []
    for part in raw.split(","):
        name = part.strip()
        if name and name not in projects:
            projects.append(name)
    return tuple(projects)


@dataclass(frozen=True)
class EngineSettings:
    """
    Validated engine settings.
    """

    date_driven_projects: tuple[str, ...] = field(default_factory=tuple)
    strict_roles: bool = False
    log_level: str = "INFO"
    json_logs: bool = False
    thresholds_file: Path | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        """
        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(
                f"TEAMLIGHT_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}, got {self.log_level!r}"
            )

        if self.thresholds_file is not None and not self.thresholds_file.is_file():
            raise ConfigurationError(f"TEAMLIGHT_THRESHOLDS_FILE does not exist: {self.thresholds_file}")

        if any(not project.strip() for project in self.date_driven_projects):
            raise ConfigurationError("TEAMLIGHT_DATE_DRIVEN_PROJECTS contains an empty project name")


def get_settings(env_file: Path | None = None) -> EngineSettings:
    """
    Build EngineSettings from the environment.

    Args:
        env_file: Optional explicit ``.env`` path; defaults to python-dotenv's search

    Returns:
        Validated EngineSettings

    Raises:
        ConfigurationError: If any value is invalid
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    thresholds_raw = os.getenv("TEAMLIGHT_THRESHOLDS_FILE", "").strip()

    return EngineSettings(
        date_driven_projects=parse_project_list(os.getenv("TEAMLIGHT_DATE_DRIVEN_PROJECTS")),
        strict_roles=parse_bool(os.getenv("TEAMLIGHT_STRICT_ROLES"), "TEAMLIGHT_STRICT_ROLES"),
        log_level=os.getenv("TEAMLIGHT_LOG_LEVEL", "INFO").strip() or "INFO",
        json_logs=parse_bool(os.getenv("TEAMLIGHT_LOG_JSON"), "TEAMLIGHT_LOG_JSON"),
        thresholds_file=Path(thresholds_raw) if thresholds_raw else None,
    )

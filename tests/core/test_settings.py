"""
Tests for engine configuration

Tests environment parsing, validation and .env loading for EngineSettings.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from teamlight.config import EngineSettings, get_settings, parse_bool, parse_project_list
from teamlight.errors import ConfigurationError

ENV_KEYS = (
    "TEAMLIGHT_DATE_DRIVEN_PROJECTS",
    "TEAMLIGHT_STRICT_ROLES",
    "TEAMLIGHT_LOG_LEVEL",
    "TEAMLIGHT_LOG_JSON",
    "TEAMLIGHT_THRESHOLDS_FILE",
)


@pytest.fixture
def clean_env():
    """Environment without any TEAMLIGHT_* variables, restored afterwards"""
    env = {key: value for key, value in os.environ.items() if key not in ENV_KEYS}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestParsers:
    """Tests for parse_bool and parse_project_list"""

    @pytest.mark.parametrize("raw", ["1", "true", "TRUE", "yes", "on", " True "])
    def test_truthy(self, raw):
        assert parse_bool(raw, "FLAG") is True

    @pytest.mark.parametrize("raw", [None, "", "0", "false", "no", "off"])
    def test_falsy(self, raw):
        assert parse_bool(raw, "FLAG") is False

    def test_invalid_bool(self):
        with pytest.raises(ConfigurationError, match="FLAG"):
            parse_bool("maybe", "FLAG")

    def test_project_list(self):
        assert parse_project_list(" Orion, Vega ,,Orion ") == ("Orion", "Vega")

    def test_empty_project_list(self):
        assert parse_project_list(None) == ()
        assert parse_project_list("") == ()


class TestEngineSettings:
    """Tests for EngineSettings validation"""

    def test_defaults(self):
        settings = EngineSettings()
        assert settings.date_driven_projects == ()
        assert settings.strict_roles is False
        assert settings.log_level == "INFO"
        assert settings.thresholds_file is None

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError, match="TEAMLIGHT_LOG_LEVEL"):
            EngineSettings(log_level="LOUD")

    def test_lowercase_log_level_accepted(self):
        assert EngineSettings(log_level="debug").log_level == "debug"

    def test_missing_thresholds_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            EngineSettings(thresholds_file=tmp_path / "missing.json")

    def test_blank_project_name(self):
        with pytest.raises(ConfigurationError):
            EngineSettings(date_driven_projects=("Orion", " "))


class TestGetSettings:
    """Tests for get_settings"""

    def test_reads_environment(self, clean_env, tmp_path):
        thresholds = tmp_path / "thresholds.json"
        thresholds.write_text("{}", encoding="utf-8")
        os.environ.update(
            {
                "TEAMLIGHT_DATE_DRIVEN_PROJECTS": "Orion,Vega",
                "TEAMLIGHT_STRICT_ROLES": "yes",
                "TEAMLIGHT_LOG_LEVEL": "DEBUG",
                "TEAMLIGHT_LOG_JSON": "1",
                "TEAMLIGHT_THRESHOLDS_FILE": str(thresholds),
            }
        )

        settings = get_settings(env_file=tmp_path / "absent.env")

        assert settings.date_driven_projects == ("Orion", "Vega")
        assert settings.strict_roles is True
        assert settings.log_level == "DEBUG"
        assert settings.json_logs is True
        assert settings.thresholds_file == Path(thresholds)

    def test_defaults_without_environment(self, clean_env, tmp_path):
        settings = get_settings(env_file=tmp_path / "absent.env")
        assert settings == EngineSettings()

    def test_loads_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("TEAMLIGHT_STRICT_ROLES=true\nTEAMLIGHT_DATE_DRIVEN_PROJECTS=Orion\n", encoding="utf-8")

        settings = get_settings(env_file=env_file)

        assert settings.strict_roles is True
        assert settings.date_driven_projects == ("Orion",)

    def test_invalid_flag_fails_fast(self, clean_env, tmp_path):
        os.environ["TEAMLIGHT_STRICT_ROLES"] = "sometimes"
        with pytest.raises(ConfigurationError, match="TEAMLIGHT_STRICT_ROLES"):
            get_settings(env_file=tmp_path / "absent.env")

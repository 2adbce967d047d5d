"""Tests for service configuration.

These tests demonstrate:
1. Default value behavior
2. Environment variable loading
3. Validation rules
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from library_loans.config import LibraryConfig, get_config, reset_config


class TestLibraryConfig:
    """Test configuration behavior."""

    def test_default_configuration(self):
        config = LibraryConfig()

        assert config.service_name == "library-loans"
        assert config.database_path == Path("data/library.db").absolute()
        assert config.database_url is None
        assert config.late_loan_days == 4
        assert config.default_page_size == 20
        assert config.max_page_size == 100
        assert config.log_level == "INFO"
        assert config.logfire_send is False

    def test_environment_variable_loading(self):
        env_vars = {
            "LIBRARY_LOANS_SERVICE_NAME": "branch-library",
            "LIBRARY_LOANS_DATABASE_PATH": "/tmp/loans.db",
            "LIBRARY_LOANS_LATE_LOAN_DAYS": "7",
            "LIBRARY_LOANS_DEBUG": "true",
            "LIBRARY_LOANS_LOG_LEVEL": "debug",
        }

        with patch.dict(os.environ, env_vars):
            config = LibraryConfig()

        assert config.service_name == "branch-library"
        assert config.database_path == Path("/tmp/loans.db")
        assert config.late_loan_days == 7
        assert config.debug is True
        assert config.log_level == "DEBUG"
        assert config.is_development is True

    def test_dotenv_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("LIBRARY_LOANS_LATE_LOAN_DAYS=9\n", encoding="utf-8")

        assert LibraryConfig().late_loan_days == 9

    @pytest.mark.parametrize("name", ["Library", "library loans", "loans@home"])
    def test_service_name_validation(self, name):
        with pytest.raises(ValidationError):
            LibraryConfig(service_name=name)

    def test_log_level_validation(self):
        with pytest.raises(ValidationError):
            LibraryConfig(log_level="TRACE")

    def test_late_loan_days_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            LibraryConfig(late_loan_days=-1)

    def test_default_page_size_must_fit_maximum(self):
        with pytest.raises(ValidationError, match="default_page_size"):
            LibraryConfig(default_page_size=50, max_page_size=10)

    def test_database_url(self, tmp_path):
        config = LibraryConfig(database_path=tmp_path / "library.db")

        assert config.get_database_url() == f"sqlite:///{tmp_path / 'library.db'}"

    def test_explicit_database_url_wins(self):
        config = LibraryConfig(database_url="postgresql://localhost/library")

        assert config.get_database_url() == "postgresql://localhost/library"


class TestConfigSingleton:
    def test_get_config_returns_same_instance(self):
        assert get_config() is get_config()

    def test_reset_config(self):
        first = get_config()
        reset_config()

        assert get_config() is not first

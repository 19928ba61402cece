"""Tests for configuration settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from jetty_wrapper.config import ConfigurationError, JettyConfig, LoggingConfig, Settings


class TestJettyConfig:
    """Test cases for JettyConfig."""

    def test_defaults(self):
        config = JettyConfig()

        assert config.home is None
        assert config.port == 8888
        assert config.startup_wait == 5
        assert config.quiet is True
        assert config.java_executable == "java"
        assert config.launcher == "start.jar"
        assert config.system_properties == {}

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("JETTY_HOME", "/opt/jetty")
        monkeypatch.setenv("JETTY_PORT", "8983")
        monkeypatch.setenv("JETTY_STARTUP_WAIT", "30")

        config = JettyConfig()

        assert config.home == Path("/opt/jetty")
        assert config.port == 8983
        assert config.startup_wait == 30

    def test_arguments_override_environment(self, monkeypatch):
        monkeypatch.setenv("JETTY_PORT", "8983")

        assert JettyConfig(port=9000).port == 9000

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_invalid_port(self, port):
        with pytest.raises(ValidationError):
            JettyConfig(port=port)

    def test_negative_startup_wait(self):
        with pytest.raises(ValidationError):
            JettyConfig(startup_wait=-1)

    def test_frozen(self):
        config = JettyConfig(home="/opt/jetty")

        with pytest.raises(ValidationError):
            config.port = 9000

    def test_auxiliary_homes_order(self):
        config = JettyConfig(solr_home="/data/solr", fedora_home="/data/fedora")

        assert list(config.auxiliary_homes.items()) == [
            ("solr.solr.home", Path("/data/solr")),
            ("fedora.home", Path("/data/fedora")),
        ]

    def test_auxiliary_homes_unset(self):
        assert JettyConfig().auxiliary_homes == {}


class TestSettings:
    """Test cases for application settings."""

    def test_logging_defaults(self):
        settings = Settings()

        assert settings.logging.level == "INFO"
        assert settings.logging.json_format is False
        assert settings.get_log_file_path() is None

    def test_logging_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_FILE_PATH", "tmp/jettywrapper-debug.log")

        config = LoggingConfig()

        assert config.level == "DEBUG"
        assert Settings(logging=config).get_log_file_path() == Path("tmp/jettywrapper-debug.log")


class TestConfigurationError:
    """Test configuration error formatting."""

    def test_message_only(self):
        assert str(ConfigurationError("Missing home")) == "Missing home"

    def test_with_details(self):
        error = ConfigurationError("Invalid launcher", {"launcher": "start.jar", "home": "/opt/jetty"})

        assert error.message == "Invalid launcher"
        assert str(error) == "Invalid launcher (home=/opt/jetty, launcher=start.jar)"
        assert error.suggestion is None

    def test_suggestion_names_environment_variables(self):
        error = ConfigurationError("Missing home", env_vars=("JETTY_HOME", "JETTY_APP_ROOT"))

        assert str(error) == "Missing home"
        assert error.suggestion == "Set JETTY_HOME or JETTY_APP_ROOT"

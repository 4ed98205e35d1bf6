"""Tests for YAML/env configuration and logging setup."""

import sys

import pytest
from loguru import logger

from infernum.config import ClientConfig, ServerConfig, configure_logging, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("INFERNUM_HOST", "INFERNUM_PORT", "INFERNUM_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_yaml(tmp_path):
    def _write(text: str) -> str:
        path = tmp_path / "infernum.yaml"
        path.write_text(text)
        return str(path)
    return _write


class TestServerConfigYaml:

    def test_full_file(self, write_yaml):
        path = write_yaml(
            "host: 127.0.0.1\n"
            "port: 8080\n"
            "log_level: debug\n"
            "engine_name: paligemma\n"
            "sample_len: 20\n"
            "model_delay_seconds: 0.5\n"
        )

        config = ServerConfig.from_yaml_file(path)

        assert config == ServerConfig(
            host="127.0.0.1",
            port=8080,
            log_level="DEBUG",
            engine_name="paligemma",
            sample_len=20,
            model_delay_seconds=0.5,
        )

    def test_missing_keys_use_defaults(self, write_yaml):
        config = ServerConfig.from_yaml_file(write_yaml("port: 9000\n"))
        assert config.port == 9000
        assert config.host == "0.0.0.0"
        assert config.sample_len == 50

    def test_empty_file_is_defaults(self, write_yaml):
        assert ServerConfig.from_yaml_file(write_yaml("")) == ServerConfig()

    @pytest.mark.parametrize(
        "text",
        [
            "port: 70000\n",
            "port: not-a-port\n",
            "log_level: LOUD\n",
            "sample_len: 0\n",
            "model_delay_seconds: -1\n",
            "host: ''\n",
            "- just\n- a list\n",
            "port: [unclosed\n",
        ],
    )
    def test_invalid_file_returns_none(self, write_yaml, text):
        assert ServerConfig.from_yaml_file(write_yaml(text)) is None

    def test_missing_file_returns_none(self, tmp_path):
        assert ServerConfig.from_yaml_file(str(tmp_path / "absent.yaml")) is None


class TestLoadConfig:

    def test_defaults(self):
        assert load_config() == ServerConfig()

    def test_invalid_file_falls_back_to_defaults(self, write_yaml):
        assert load_config(write_yaml("port: 0\n")) == ServerConfig()

    def test_env_overrides_file(self, write_yaml, monkeypatch):
        path = write_yaml("host: 10.0.0.1\nport: 8080\n")
        monkeypatch.setenv("INFERNUM_PORT", "9090")
        monkeypatch.setenv("INFERNUM_LOG_LEVEL", "warning")

        config = load_config(path)

        assert config.host == "10.0.0.1"
        assert config.port == 9090
        assert config.log_level == "WARNING"

    def test_invalid_env_values_ignored(self, monkeypatch):
        monkeypatch.setenv("INFERNUM_HOST", "example.org")
        monkeypatch.setenv("INFERNUM_PORT", "eighty")
        monkeypatch.setenv("INFERNUM_LOG_LEVEL", "chatty")

        config = load_config()

        assert config.host == "example.org"
        assert config.port == 3000
        assert config.log_level == "INFO"


class TestClientConfig:

    def test_defaults(self):
        config = ClientConfig()
        assert config.host == "localhost"
        assert config.port == 3000
        assert config.timeout_seconds == 30.0


class TestConfigureLogging:

    def test_installs_single_sink_at_level(self, capsys):
        configure_logging("warning")
        try:
            logger.info("hidden message")
            logger.warning("visible message")
            err = capsys.readouterr().err
            assert "visible message" in err
            assert "hidden message" not in err
        finally:
            logger.remove()
            logger.add(sys.__stderr__)

"""
CONFIGURATION

Server/client settings and logging setup.

SOURCES (later wins):
1. Dataclass defaults
2. YAML file (optional)
3. Environment: INFERNUM_HOST, INFERNUM_PORT, INFERNUM_LOG_LEVEL

FAILURE SEMANTICS:
- Invalid YAML or field → file ignored, defaults used (logged)
- Invalid environment value → value ignored (logged)
- Configuration errors never stop the server from starting
"""

import os
import sys
from dataclasses import dataclass, replace
from typing import Optional

import yaml
from loguru import logger

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServerConfig:
    """Settings for the HTTP serving layer and its engine."""

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    engine_name: str = "infernum"
    sample_len: int = 50
    model_delay_seconds: float = 0.0

    @classmethod
    def from_yaml_file(cls, yaml_path: str) -> Optional["ServerConfig"]:
        """
        Parse and validate a server YAML file.

        Returns:
            ServerConfig if valid, None if invalid

        Missing keys take their defaults. Unknown keys are ignored.
        """
        try:
            with open(yaml_path, "r") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            logger.error(f"Config file not found: {yaml_path}")
            return None
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {yaml_path}: {e}")
            return None

        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.error(f"Config is not a YAML mapping: {yaml_path}")
            return None

        defaults = cls()

        host = data.get("host", defaults.host)
        if not host or not isinstance(host, str):
            logger.error(f"host must be a non-empty string in {yaml_path}")
            return None

        port = data.get("port", defaults.port)
        if not _valid_port(port):
            logger.error(f"port must be an integer between 1 and 65535 in {yaml_path}")
            return None

        log_level = data.get("log_level", defaults.log_level)
        if not isinstance(log_level, str) or log_level.upper() not in LOG_LEVELS:
            logger.error(f"log_level must be one of {', '.join(LOG_LEVELS)} in {yaml_path}")
            return None

        engine_name = data.get("engine_name", defaults.engine_name)
        if not engine_name or not isinstance(engine_name, str):
            logger.error(f"engine_name must be a non-empty string in {yaml_path}")
            return None

        sample_len = data.get("sample_len", defaults.sample_len)
        if isinstance(sample_len, bool) or not isinstance(sample_len, int) or sample_len <= 0:
            logger.error(f"sample_len must be a positive integer in {yaml_path}")
            return None

        delay = data.get("model_delay_seconds", defaults.model_delay_seconds)
        if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
            logger.error(f"model_delay_seconds must be a non-negative number in {yaml_path}")
            return None

        return cls(
            host=host,
            port=port,
            log_level=log_level.upper(),
            engine_name=engine_name,
            sample_len=sample_len,
            model_delay_seconds=float(delay),
        )


@dataclass(frozen=True)
class ClientConfig:
    host: str = "localhost"
    port: int = 3000
    timeout_seconds: float = 30.0


def _valid_port(port) -> bool:
    return not isinstance(port, bool) and isinstance(port, int) and 0 < port < 65536


def load_config(path: Optional[str] = None) -> ServerConfig:
    """
    Build the effective server configuration.

    Args:
        path: Optional YAML file

    Returns:
        ServerConfig with file and environment overrides applied
    """
    config = ServerConfig()

    if path is not None:
        parsed = ServerConfig.from_yaml_file(path)
        if parsed is None:
            logger.warning(f"Ignoring invalid config file {path}, using defaults")
        else:
            config = parsed

    host = os.getenv("INFERNUM_HOST")
    if host:
        config = replace(config, host=host)

    port = os.getenv("INFERNUM_PORT")
    if port:
        try:
            port_value = int(port)
        except ValueError:
            port_value = None
        if port_value is not None and _valid_port(port_value):
            config = replace(config, port=port_value)
        else:
            logger.warning(f"Invalid INFERNUM_PORT={port!r}, using {config.port}")

    log_level = os.getenv("INFERNUM_LOG_LEVEL")
    if log_level:
        if log_level.upper() in LOG_LEVELS:
            config = replace(config, log_level=log_level.upper())
        else:
            logger.warning(f"Invalid INFERNUM_LOG_LEVEL={log_level!r}, using {config.log_level}")

    return config


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink at `level`."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())

"""
Config system - typed configuration loaded from the environment.

Precedence (later overrides earlier):
1. Dataclass defaults
2. ``.env`` file (never overrides variables already set in the process)
3. Process environment variables
4. Manual overrides passed to :meth:`Config.from_env`
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import dotenv_values

from .faults import ConfigurationError


ENVIRONMENTS = ("development", "production", "test")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("simple", "detailed")
LOG_TRANSPORTS = ("console", "file")


@dataclass(frozen=True)
class LoggerConfig:
    level: str = "INFO"
    format: str = "simple"
    transports: Tuple[str, ...] = ("console",)
    filename: str = "logs/app.log"
    max_size: int = 10 * 1024 * 1024
    max_files: int = 5


@dataclass(frozen=True)
class ServerConfig:
    host: str = "localhost"
    port: int = 3000


@dataclass(frozen=True)
class Config:
    """
    Application configuration.

    Bound in the DI container at boot so services can declare it as a
    constructor dependency.
    """

    environment: str = "development"
    logger: LoggerConfig = field(default_factory=LoggerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = ".env",
        *,
        prefix: str = "",
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "Config":
        """
        Load configuration from a ``.env`` file and the environment.

        Args:
            env_file: Path to a dotenv file (skipped when missing or None)
            prefix: Prefix for every variable name (e.g. "MYAPP_")
            environ: Environment mapping (defaults to ``os.environ``)
            overrides: Values replacing top-level fields after loading

        Raises:
            ConfigurationError: If a value is missing or invalid
        """
        values: Dict[str, str] = {}
        if env_file and os.path.exists(env_file):
            values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        values.update(os.environ if environ is None else environ)

        def get(name: str, default: str) -> str:
            return values.get(f"{prefix}{name}", default)

        environment = get("APP_ENV", get("NODE_ENV", "development")).lower()
        if environment not in ENVIRONMENTS:
            raise ConfigurationError(
                f"Unknown environment '{environment}' (expected one of {', '.join(ENVIRONMENTS)})",
                code="CONFIG_INVALID",
            )

        level = get("LOG_LEVEL", "INFO").upper()
        if level not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level '{level}'", code="CONFIG_INVALID")

        log_format = get("LOG_FORMAT", "simple").lower()
        if log_format not in LOG_FORMATS:
            raise ConfigurationError(f"Unknown log format '{log_format}'", code="CONFIG_INVALID")

        transports = tuple(t.strip().lower() for t in get("LOG_TRANSPORTS", "console").split(",") if t.strip())
        unknown = [t for t in transports if t not in LOG_TRANSPORTS]
        if unknown:
            raise ConfigurationError(f"Unknown log transports: {', '.join(unknown)}", code="CONFIG_INVALID")

        logger_config = LoggerConfig(
            level=level,
            format=log_format,
            transports=transports,
            filename=get("LOG_FILE", LoggerConfig.filename),
            max_size=_parse_int("LOG_MAX_SIZE", get("LOG_MAX_SIZE", str(LoggerConfig.max_size))),
            max_files=_parse_int("LOG_MAX_FILES", get("LOG_MAX_FILES", str(LoggerConfig.max_files))),
        )

        port = _parse_int("PORT", get("PORT", str(ServerConfig.port)))
        if not 0 < port < 65536:
            raise ConfigurationError(f"Port out of range: {port}", code="CONFIG_INVALID")

        config = cls(
            environment=environment,
            logger=logger_config,
            server=ServerConfig(host=get("HOST", ServerConfig.host), port=port),
        )
        if overrides:
            config = replace(config, **overrides)

        logging.getLogger("trellis.config").debug(
            f"Loaded config: environment={config.environment} "
            f"server={config.server.host}:{config.server.port}"
        )
        return config

    def is_development(self) -> bool:
        return self.environment == "development"

    def is_production(self) -> bool:
        return self.environment == "production"

    def is_test(self) -> bool:
        return self.environment == "test"


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Configuration key '{name}' must be an integer, got {raw!r}", code="CONFIG_INVALID")

"""
Configuration loading and logging setup.
"""

import logging
import logging.handlers
from dataclasses import FrozenInstanceError

import pytest

from trellis.config import Config, LoggerConfig, ServerConfig
from trellis.faults import ConfigurationError
from trellis.log import LoggerService, configure_logging


# ============================================================================
# Config.from_env
# ============================================================================

class TestConfigFromEnv:

    def test_defaults(self):
        config = Config.from_env(None, environ={})
        assert config.environment == "development"
        assert config.logger == LoggerConfig()
        assert config.logger.max_size == 10 * 1024 * 1024
        assert config.logger.max_files == 5
        assert config.server == ServerConfig(host="localhost", port=3000)
        assert config.is_development()

    def test_environment_variables(self):
        config = Config.from_env(None, environ={
            "APP_ENV": "production",
            "LOG_LEVEL": "debug",
            "LOG_FORMAT": "detailed",
            "LOG_TRANSPORTS": "console, file",
            "LOG_FILE": "var/trellis.log",
            "LOG_MAX_SIZE": "2048",
            "LOG_MAX_FILES": "2",
            "HOST": "0.0.0.0",
            "PORT": "8080",
        })
        assert config.is_production()
        assert config.logger == LoggerConfig(
            level="DEBUG",
            format="detailed",
            transports=("console", "file"),
            filename="var/trellis.log",
            max_size=2048,
            max_files=2,
        )
        assert config.server == ServerConfig(host="0.0.0.0", port=8080)

    def test_node_env_fallback(self):
        assert Config.from_env(None, environ={"NODE_ENV": "test"}).is_test()
        assert Config.from_env(None, environ={"NODE_ENV": "test", "APP_ENV": "production"}).is_production()

    def test_prefix(self):
        config = Config.from_env(None, prefix="MYAPP_", environ={"MYAPP_PORT": "9000", "PORT": "1"})
        assert config.server.port == 9000

    def test_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PORT=4000\nHOST=127.0.0.1\nAPP_ENV=test\n")

        config = Config.from_env(str(env_file), environ={"HOST": "example.org"})

        assert config.server.port == 4000
        assert config.server.host == "example.org"
        assert config.environment == "test"

    def test_missing_dotenv_file_is_skipped(self, tmp_path):
        config = Config.from_env(str(tmp_path / "absent.env"), environ={})
        assert config.server.port == 3000

    def test_overrides(self):
        config = Config.from_env(None, environ={}, overrides={"environment": "test"})
        assert config.is_test()

    @pytest.mark.parametrize("environ", [
        {"APP_ENV": "staging"},
        {"LOG_LEVEL": "LOUD"},
        {"LOG_FORMAT": "xml"},
        {"LOG_TRANSPORTS": "console,syslog"},
        {"PORT": "http"},
        {"PORT": "70000"},
        {"LOG_MAX_FILES": "many"},
    ])
    def test_invalid_values(self, environ):
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_env(None, environ=environ)
        assert exc_info.value.code == "CONFIG_INVALID"

    def test_config_is_frozen(self):
        with pytest.raises(FrozenInstanceError):
            Config().environment = "production"


# ============================================================================
# Logging
# ============================================================================

class TestLogging:

    def _trellis_handlers(self):
        return [h for h in logging.getLogger("trellis").handlers if getattr(h, "_trellis_handler", False)]

    def test_console_only(self):
        configure_logging(LoggerConfig(level="WARNING"))
        handlers = self._trellis_handlers()
        assert len(handlers) == 1
        assert logging.getLogger("trellis").level == logging.WARNING
        configure_logging(LoggerConfig())

    def test_file_transport(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        configure_logging(LoggerConfig(
            transports=("console", "file"),
            filename=str(log_file),
            max_size=1024,
            max_files=3,
        ))

        rotating = [h for h in self._trellis_handlers() if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 1024
        assert rotating[0].backupCount == 3
        assert log_file.parent.is_dir()

        LoggerService().info("Test", "written to file")
        rotating[0].flush()
        assert "[Test] written to file" in log_file.read_text()

        configure_logging(LoggerConfig())

    def test_reconfigure_replaces_handlers(self):
        configure_logging(LoggerConfig())
        configure_logging(LoggerConfig())
        assert len(self._trellis_handlers()) == 1


class TestLoggerService:

    def test_tagged_messages(self, caplog):
        caplog.set_level(logging.DEBUG, logger="trellis.test")
        logger = LoggerService("trellis.test")

        logger.debug("Boot", "starting")
        logger.warn("ErrorHandler", "404 Not Found: GET /x")
        logger.error("[DB]", "db down")

        messages = [r.getMessage() for r in caplog.records]
        assert messages == [
            "[Boot] starting",
            "[ErrorHandler] 404 Not Found: GET /x",
            "[DB] db down",
        ]
        assert [r.levelno for r in caplog.records] == [logging.DEBUG, logging.WARNING, logging.ERROR]

    def test_warning_alias(self):
        assert LoggerService.warning is LoggerService.warn

"""
Unit tests for configuration loading and logging helpers.
"""

import asyncio
import json
import logging
import pytest

from common.config import (
    ConfigError,
    HostLogHandler,
    PluginConfig,
    configure_logger,
    load_config,
    parse_log_level,
)


@pytest.fixture
def config_file(tmp_path):
    def _write(data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
        return str(path)
    return _write


class TestLoadConfig:
    """Test configuration precedence and validation"""

    def test_defaults(self):
        config = load_config()

        assert config == PluginConfig()
        assert config.status_file == "ChronoDown.txt"
        assert config.tick_seconds == 1.0

    def test_file_values(self, config_file):
        config = load_config(config_file({"status_file": "/tmp/status.txt", "log_level": "debug"}))

        assert config.status_file == "/tmp/status.txt"
        assert config.log_level == "debug"
        assert config.host == "localhost"

    def test_overrides_win(self, config_file):
        path = config_file({"status_file": "from-file.txt", "log_prefix": "SDFS"})

        config = load_config(path, overrides={"status_file": "from-cli.txt", "log_file": None})

        assert config.status_file == "from-cli.txt"
        assert config.log_prefix == "SDFS"
        assert config.log_file is None

    def test_unknown_key(self, config_file):
        with pytest.raises(ConfigError, match="Unknown config keys: colour"):
            load_config(config_file({"colour": "red"}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.json"))

    def test_malformed_json(self, config_file):
        with pytest.raises(ConfigError):
            load_config(config_file("{not json"))

    def test_not_an_object(self, config_file):
        with pytest.raises(ConfigError, match="JSON object"):
            load_config(config_file([1, 2]))

    def test_bad_log_level(self):
        with pytest.raises(ConfigError, match="log level"):
            load_config(overrides={"log_level": "loud"})

    @pytest.mark.parametrize("tick", [0, -1, "fast"])
    def test_bad_tick(self, tick):
        with pytest.raises(ConfigError, match="tick_seconds"):
            load_config(overrides={"tick_seconds": tick})

    def test_tick_coerced_to_float(self, config_file):
        assert load_config(config_file({"tick_seconds": 2})).tick_seconds == 2.0

    @pytest.mark.parametrize("tick", ["2", True, float("inf"), 10 ** 400])
    def test_tick_must_be_finite_number(self, tick):
        with pytest.raises(ConfigError, match="tick_seconds"):
            load_config(overrides={"tick_seconds": tick})

    @pytest.mark.parametrize("data", [
        {"status_file": 5},
        {"host": 1},
        {"log_prefix": ""},
        {"log_level": ["info"]},
        {"log_file": 3},
        {"trace_file": False},
    ])
    def test_wrong_value_types(self, config_file, data):
        key = next(iter(data))

        with pytest.raises(ConfigError, match=key):
            load_config(config_file(data))

    def test_null_optional_paths_allowed(self, config_file):
        config = load_config(config_file({"log_file": None, "trace_file": None}))

        assert config.log_file is None
        assert config.trace_file is None

    def test_deeply_nested_file(self, config_file):
        with pytest.raises(ConfigError):
            load_config(config_file("[" * 100000 + "]" * 100000))


class TestLogging:
    """Test logger helpers"""

    @pytest.mark.parametrize("name,level", [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        ("warning", logging.WARNING),
    ])
    def test_parse_log_level(self, name, level):
        assert parse_log_level(name) == level

    def test_configure_logger_file(self, tmp_path):
        log_file = tmp_path / "plugin.log"
        logger = configure_logger("chronodown.test.file", log_file=str(log_file),
                                  log_level=logging.DEBUG)
        try:
            logger.debug("hello file")
            for handler in logger.handlers:
                handler.flush()

            assert "hello file" in log_file.read_text(encoding="utf-8")
            assert logger.level == logging.DEBUG
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()


class TestHostLogHandler:
    """Test forwarding of log records to the host"""

    @pytest.fixture
    def host_logger(self, fake_host):
        logger = logging.getLogger("chronodown.test.host")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        handler = HostLogHandler(fake_host)
        logger.addHandler(handler)
        yield logger
        logger.removeHandler(handler)

    @pytest.mark.asyncio
    async def test_forwards_info(self, host_logger, fake_host):
        host_logger.info("countdown started")
        await asyncio.sleep(0.01)

        messages = [f["payload"]["message"] for f in fake_host.frames("logMessage")]
        assert messages == ["[ChronoDown]: countdown started"]

    @pytest.mark.asyncio
    async def test_skips_debug(self, host_logger, fake_host):
        host_logger.debug("noise")
        await asyncio.sleep(0.01)

        assert fake_host.sent == []

    @pytest.mark.asyncio
    async def test_skips_when_disconnected(self, host_logger, fake_host):
        await fake_host.disconnect()

        host_logger.info("lost")
        await asyncio.sleep(0.01)

        assert fake_host.sent == []

    def test_skips_outside_event_loop(self, host_logger, fake_host):
        # Should not raise
        host_logger.info("no loop")
        assert fake_host.sent == []

    @pytest.mark.asyncio
    async def test_skips_transport_records(self, fake_host):
        handler = HostLogHandler(fake_host)
        record = logging.LogRecord("lib.connection.host", logging.WARNING, __file__, 1,
                                   "send failed", None, None)

        handler.handle(record)
        await asyncio.sleep(0.01)

        assert fake_host.sent == []

"""
Logging Configuration Unit Tests
"""

from httpstat.logging_config import build_logging_config


class TestBuildLoggingConfig:
    """dictConfig mapping"""

    def test_info_by_default(self):
        config = build_logging_config(debug=False)

        assert config["root"]["level"] == "INFO"
        assert config["loggers"]["httpstat"]["level"] == "INFO"

    def test_debug(self):
        config = build_logging_config(debug=True)

        assert config["root"]["level"] == "DEBUG"
        assert config["loggers"]["httpstat"]["level"] == "DEBUG"
        # uvicorn stays at INFO
        assert config["loggers"]["uvicorn.access"]["level"] == "INFO"

    def test_client_stack_quiet(self):
        config = build_logging_config(debug=True)

        assert config["loggers"]["httpcore"]["level"] == "WARNING"
        assert config["loggers"]["httpx"]["level"] == "WARNING"

    def test_single_console_handler(self):
        config = build_logging_config(debug=False)

        assert list(config["handlers"]) == ["console"]
        assert all(logger["handlers"] == ["console"] for logger in config["loggers"].values())
        assert all(logger["propagate"] is False for logger in config["loggers"].values())

import json
import logging

from vecstore.core.logging import build_logging_config
from vecstore.core.logging.format import RFC3339JsonFormatter


def test_defaults_from_environment(monkeypatch):
    monkeypatch.setenv("VECSTORE_LOGGING_LEVEL", "DEBUG")
    monkeypatch.setenv("VECSTORE_LOGGING_FORMAT", "json")

    config = build_logging_config()

    assert config["loggers"]["vecstore"]["level"] == "DEBUG"
    assert config["handlers"]["default"]["formatter"] == "json"


def test_explicit_arguments_win_and_unknown_format_falls_back(monkeypatch):
    monkeypatch.setenv("VECSTORE_LOGGING_LEVEL", "DEBUG")

    config = build_logging_config(level="WARNING", log_format="xml")

    assert config["loggers"]["vecstore"]["level"] == "WARNING"
    assert config["handlers"]["default"]["formatter"] == "standard"
    assert config["disable_existing_loggers"] is False


def test_json_formatter_uses_rfc3339_timestamps():
    formatter = RFC3339JsonFormatter(reserved_attrs=["msg", "args"], rename_fields={"levelname": "level"})
    record = logging.LogRecord("vecstore.sql", logging.INFO, __file__, 10, "created table", None, None)
    record.created = 0.0

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "created table"
    assert payload["timestamp"] == "1970-01-01T00:00:00+00:00"
    assert "created" not in payload
    assert payload["level"] == "INFO"

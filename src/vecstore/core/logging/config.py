import logging.config
import os
from typing import Any, Dict, Optional

from vecstore.core.logging.format import RFC3339JsonFormatter

STANDARD_FORMAT = "%(levelname)s:\t %(asctime)s - %(name)s - %(message)s (%(filename)s:%(lineno)d)"


def build_logging_config(level: Optional[str] = None, log_format: Optional[str] = None) -> Dict[str, Any]:
    """
    Logging configuration for the ``vecstore`` logger hierarchy.

    Defaults come from ``VECSTORE_LOGGING_LEVEL`` (INFO) and ``VECSTORE_LOGGING_FORMAT``
    (``standard`` or ``json``).
    """
    level = level or os.environ.get("VECSTORE_LOGGING_LEVEL", "INFO")
    log_format = log_format or os.environ.get("VECSTORE_LOGGING_FORMAT", "standard")
    if log_format not in ("standard", "json"):
        log_format = "standard"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": STANDARD_FORMAT},
            "json": {
                "()": RFC3339JsonFormatter,
                "reserved_attrs": ["msg", "args"],
                "rename_fields": {"levelname": "level"},
            },
        },
        "handlers": {
            "default": {
                "formatter": log_format,
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "vecstore": {
                "level": level,
                "handlers": ["default"],
                "propagate": False,
            },
        },
    }


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    logging.config.dictConfig(build_logging_config(level, log_format))

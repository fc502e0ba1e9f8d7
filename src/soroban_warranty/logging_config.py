import logging
import logging.config
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "/tmp/soroban_warranty.log")

QUIET_LOGGERS = ("uvicorn.access", "httpx", "stellar_sdk")

_HANDLERS = ["console", "file"]

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)-6s %(name)8s:%(lineno)d %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": sys.stdout,
        },
        "file": {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": LOG_FILE,
            "mode": "a",
        },
    },
    "loggers": {
        "soroban_warranty": {"level": LOG_LEVEL, "handlers": _HANDLERS, "propagate": False},
        **{name: {"level": "WARNING", "handlers": _HANDLERS, "propagate": False} for name in QUIET_LOGGERS},
    },
    "root": {"level": "WARNING", "handlers": _HANDLERS},
}


def setup_logging(level: str | None = None) -> None:
    """Configure the soroban_warranty logger tree; ``level`` overrides LOG_LEVEL."""
    config = LOGGING_CONFIG
    if level:
        config = {**LOGGING_CONFIG, "loggers": {**LOGGING_CONFIG["loggers"]}}
        config["loggers"]["soroban_warranty"] = {**config["loggers"]["soroban_warranty"], "level": level.upper()}
    logging.config.dictConfig(config)

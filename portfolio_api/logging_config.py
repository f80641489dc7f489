# portfolio_api/logging_config.py
import logging
import logging.config
from pathlib import Path

from portfolio_api.config import ROOT, Settings

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def build_logging_config(settings: Settings) -> dict:
    level = settings.LOG_LEVEL or "INFO"
    handlers = ["console"]

    config = {
        "version": 1,
        "disable_existing_loggers": False,

        "formatters": {
            "standard": {
                "format": FORMAT,
            },
            "access": {
                "format": "%(asctime)s | %(levelname)s | uvicorn.access | %(message)s",
            },
        },

        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
        },

        "loggers": {},

        "root": {
            "handlers": handlers,
            "level": level,
        },
    }

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        if not log_file.is_absolute():
            log_file = ROOT / log_file
        log_file.parent.mkdir(parents=True, exist_ok=True)

        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": str(log_file),
            "maxBytes": 5 * 1024 * 1024,  # 5 MB
            "backupCount": 5,
            "encoding": "utf-8",
            "level": level,
        }
        config["handlers"]["access_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "access",
            "filename": str(log_file),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf-8",
            "level": level,
        }
        handlers = ["console", "file"]
        config["root"]["handlers"] = handlers

    config["loggers"] = {
        # Uvicorn core logs
        "uvicorn": {"handlers": handlers, "level": level, "propagate": False},
        "uvicorn.error": {"handlers": handlers, "level": level, "propagate": False},
        "uvicorn.access": {
            "handlers": ["access_file"] if settings.LOG_FILE else ["console"],
            "level": level,
            "propagate": False,
        },
        # App logs
        "portfolio_api": {"handlers": handlers, "level": level, "propagate": False},
    }
    return config


def setup_logging(settings: Settings) -> None:
    logging.config.dictConfig(build_logging_config(settings))
    logging.getLogger("portfolio_api").info(
        "Logging initialized (level=%s file=%s)", settings.LOG_LEVEL, settings.LOG_FILE or "-"
    )

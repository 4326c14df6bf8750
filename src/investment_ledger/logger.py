import logging
import logging.config
import os

LOG_FILENAME = "ledger.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_RESET = "\x1b[0m"
_LEVEL_COLOURS = {
    logging.DEBUG: "\x1b[90m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[31;1m",
}


class ColourizedFormatter(logging.Formatter):
    """Console formatter that tints the level name; honours ``NO_COLOR``."""

    def __init__(self, *args, use_colours: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_colours = use_colours

    def formatMessage(self, record: logging.LogRecord) -> str:
        colour = _LEVEL_COLOURS.get(record.levelno) if self.use_colours else None
        if colour is None:
            return super().formatMessage(record)
        # Tint a copy; file handlers format the same record afterwards.
        tinted = logging.makeLogRecord(record.__dict__)
        tinted.levelname = f"{colour}{record.levelname}{_RESET}"
        return super().formatMessage(tinted)


def _route_to(handlers: list[str], level: str) -> dict:
    return {"handlers": handlers, "level": level, "propagate": False}


def get_logging_config() -> dict:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir = os.getenv("LOG_DIR")

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "console",
        },
    }
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers["ledger_file"] = {
            "class": "logging.FileHandler",
            "filename": os.path.join(log_dir, LOG_FILENAME),
            "encoding": "utf-8",
            "formatter": "file",
        }
    targets = list(handlers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": "investment_ledger.logger.ColourizedFormatter",
                "format": LOG_FORMAT,
                "use_colours": not os.getenv("NO_COLOR"),
            },
            "file": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "": {"handlers": targets, "level": level},
            **{name: _route_to(targets, "INFO") for name in ("uvicorn", "uvicorn.error", "uvicorn.access")},
            # httpx logs every provider request at INFO.
            "httpx": _route_to(targets, "WARNING"),
        },
    }


def setup_logging() -> None:
    logging.config.dictConfig(get_logging_config())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

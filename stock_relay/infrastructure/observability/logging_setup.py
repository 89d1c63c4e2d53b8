"""
Logging setup for the relay.

Modules log through ``logging.getLogger(__name__)``; configure_logging()
attaches one stdout handler to the package logger.  Calling it again only
updates the level and formatter.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Iterable

ROOT_LOGGER = "stock_relay"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_HANDLER_FLAG = "_stock_relay_handler"


class JsonFormatter(logging.Formatter):
    """One JSON object per line with the core record fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _level_to_int(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).upper(), None)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: str | int = "INFO", json_logs: bool = False) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_level_to_int(level))
    logger.propagate = False

    formatter = JsonFormatter() if json_logs else logging.Formatter(DEFAULT_FORMAT)
    handler = next((h for h in logger.handlers if getattr(h, _HANDLER_FLAG, False)), None)
    if handler is None:
        handler = logging.StreamHandler(stream=sys.stdout)
        setattr(handler, _HANDLER_FLAG, True)
        logger.addHandler(handler)
    handler.setFormatter(formatter)
    return logger


def quiet_third_party(
    names: Iterable[str] = ("uvicorn.access", "asyncio"),
    level: str | int = "WARNING",
) -> None:
    for name in names:
        logging.getLogger(name).setLevel(_level_to_int(level))

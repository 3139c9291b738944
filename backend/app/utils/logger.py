"""
Logger configuration module for MatchDay.

Records logged with ``extra={"match_id": ..., ...}`` carry those keys into the
JSON output, so one match can be followed across the API, settlement and the
scheduler.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from app.utils.config import Settings, settings

CONTEXT_FIELDS = ("match_id", "team_id", "player_id", "job")

# Chatty client libraries: per-request lines from httpx, per-run lines from apscheduler
QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default", "apscheduler.scheduler")


class JsonFormatter(logging.Formatter):
    """Custom formatter to output logs in JSON format."""

    def __init__(self, environment: str):
        super().__init__()
        self.environment = environment

    def format(self, record):
        """Format the log record as a JSON string."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "environment": self.environment,
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(log_data, default=str)


def setup_logging(current: Optional[Settings] = None) -> logging.Logger:
    """Configure the root handler and return the ``matchday`` logger."""
    current = current or settings
    level = getattr(logging, current.LOG_LEVEL, logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    if current.APP_DEBUG:
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        console_handler.setFormatter(JsonFormatter(current.ENVIRONMENT))
    root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    app_logger = logging.getLogger("matchday")
    app_logger.setLevel(level)
    return app_logger


logger = setup_logging()

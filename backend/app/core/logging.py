import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

from .config import get_settings

_LOGGING_CONFIGURED = False

STRUCTURED_FIELDS = (
    "request_id",
    "company_id",
    "report_id",
    "user_id",
    "vendor",
    "tier",
    "step",
)

# Third-party loggers that log every vendor request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys passed through ``extra=`` that appear in STRUCTURED_FIELDS are lifted
    to the top level, so enrichment runs can be followed by company_id/vendor
    and report runs by report_id/tier.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", "offmarket_backend"),
        }
        payload.update(
            {f: getattr(record, f) for f in STRUCTURED_FIELDS if hasattr(record, f)}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: int | str | None = None) -> None:
    """
    Install the JSON handler on the root logger. Idempotent.

    ``level`` defaults to settings.LOG_LEVEL.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    if level is None:
        level = get_settings().LOG_LEVEL.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _LOGGING_CONFIGURED = True

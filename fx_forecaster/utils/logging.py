"""Logging setup shared by the CLI, the provider and the pipeline."""
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# extra= keys the JSON formatter copies onto the output object
STRUCTURED_FIELDS = (
    "correlation_id",
    "function",
    "execution_time_ms",
    "attempts",
    "delay",
    "error",
)

QUIET_LOGGERS = ("httpx", "httpcore", "matplotlib")


def _build_handlers(formatter: logging.Formatter, log_file: Optional[str]) -> List[logging.Handler]:
    # stderr keeps stdout free for CLI tables
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_type: str = "json",
    enabled: bool = True
) -> None:
    """
    Configure the root logger.

    Args:
        level: Level name, e.g. "DEBUG"
        log_file: Also append records to this file
        format_type: "json" for one object per line, anything else for text
        enabled: False silences every logger
    """
    if not enabled:
        logging.disable(logging.CRITICAL)
        return
    logging.disable(logging.NOTSET)

    formatter = JsonFormatter() if format_type == "json" else logging.Formatter(TEXT_FORMAT)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=_build_handlers(formatter, log_file),
        force=True
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with the structured extras flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in STRUCTURED_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class CorrelationAdapter(logging.LoggerAdapter):
    """Stamp every record with the run's correlation id."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("correlation_id", self.extra["correlation_id"])
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, correlation_id: Optional[str] = None):
    """Module logger, or a CorrelationAdapter around it when a run id is given."""
    logger = logging.getLogger(name)
    if correlation_id:
        return CorrelationAdapter(logger, {"correlation_id": correlation_id})
    return logger

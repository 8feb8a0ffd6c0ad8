"""Logging setup for the CLI and for embedding applications."""

import json
import logging
import re
import sys
from typing import Any, Literal

from pydantic import BaseModel

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

REDACTED = "[REDACTED]"
SECRET_KEY_PATTERN = re.compile(r"api_key|token|secret|authorization|password", re.IGNORECASE)
# GitHub tokens, provider keys and bearer headers that end up inside messages
SECRET_VALUE_PATTERN = re.compile(
    r"\b(?:gh[pousr]_[A-Za-z0-9]{16,}|github_pat_\w{20,}|sk-[A-Za-z0-9_-]{16,})\b|(?<=Bearer )\S+"
)
MAX_FIELD_CHARS = 500

# Attributes every LogRecord carries; anything else on a record came from ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _scrub(text: str) -> str:
    text = SECRET_VALUE_PATTERN.sub(REDACTED, text)
    if len(text) > MAX_FIELD_CHARS:
        return f"{text[:MAX_FIELD_CHARS]}...(+{len(text) - MAX_FIELD_CHARS} chars)"
    return text


def sanitize_for_logging(data: Any) -> Any:
    """
    Make a value safe to emit as a structured log field.

    Secret-named keys are replaced, token-shaped substrings are masked, long
    strings (usually source code) are cut with a note of how much was dropped,
    and pydantic models are dumped first so findings and patches log as JSON.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    if isinstance(data, dict):
        return {
            key: REDACTED if SECRET_KEY_PATTERN.search(str(key)) else sanitize_for_logging(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple, set)):
        return [sanitize_for_logging(item) for item in data]
    if isinstance(data, str):
        return _scrub(data)
    return data


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields are nested under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "where": f"{record.module}:{record.lineno}",
            "message": _scrub(record.getMessage()),
        }
        context = {
            key: value for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if context:
            payload["context"] = sanitize_for_logging(context)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def setup_logging(level: LogLevel = "WARNING", structured: bool = False) -> logging.Logger:
    """
    Configure the ``cursed_reviewer`` logger hierarchy.

    Args:
        level: The minimum logging level.
        structured: If True, output logs as JSON lines.

    Returns:
        The package root logger.
    """
    logger = logging.getLogger("cursed_reviewer")
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.setLevel(level)
    formatter = JsonFormatter() if structured else logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger

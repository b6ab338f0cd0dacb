"""
BrowserBridge - Structured Logging

One JSON object per line in ~/.browserbridge/logs/browserbridge.log
(rotated at 10MB, 5 backups). Tool calls carry tool_name and duration_ms,
the serializer adds queue_depth, workflows add the step that failed.

stdout is the MCP stdio transport. Console output goes to stderr, and only
with --verbose.
"""

import json
import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FILE_NAME = "browserbridge.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Context fields copied from the LogRecord when a call site passes them in ``extra``
_EXTRA_FIELDS = ("tool_name", "duration_ms", "queue_depth", "step", "url", "verbose")


def default_log_dir() -> Path:
    return Path.home() / ".browserbridge" / "logs"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({name: getattr(record, name) for name in _EXTRA_FIELDS if hasattr(record, name)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _stderr_handler(level: int, fmt: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(verbose: bool = False, log_dir: Path | None = None) -> logging.Logger:
    """Configure the ``browserbridge`` logger tree.

    Args:
        verbose: Also echo INFO and above to stderr (--verbose)
        log_dir: Directory for browserbridge.log (default ~/.browserbridge/logs)

    Returns:
        The ``browserbridge`` logger
    """
    logger = logging.getLogger("browserbridge")
    logger.handlers.clear()
    log_dir = log_dir or default_log_dir()

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
    except OSError as e:
        # Unwritable home: keep warnings on stderr, nothing else
        logger.setLevel(logging.INFO if verbose else logging.WARNING)
        logger.addHandler(_stderr_handler(logging.INFO if verbose else logging.WARNING, "[%(levelname)s] %(message)s"))
        logger.warning(f"File logging disabled: {e}")
        return logger

    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())
    logger.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)

    if verbose:
        logger.addHandler(_stderr_handler(logging.INFO, "[%(levelname)s] %(name)s: %(message)s"))

    logger.info("Logging initialized", extra={"verbose": verbose})
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module."""
    return logging.getLogger(f"browserbridge.{name}")

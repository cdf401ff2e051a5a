"""Logging for ShopEase: per-run debug log plus the plain-text audit trail.

Every launch gets its own ``logs/run_<timestamp>.log``; all ``shopease.*``
loggers route there. Warnings and errors also go to stderr.

The audit trail (``data/audit.log``) is separate: one human-readable line
per business event (cart change, login, user edit), appended forever.
"""

import datetime
import logging
import sys
from pathlib import Path

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("shopease.audit")


def setup_logging(logs_dir: Path) -> Path:
    """Initialise the root ``shopease`` logger and return this run's log file."""
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger("shopease")
    root_logger.setLevel(logging.DEBUG)

    # repeated app factories (tests) must not stack handlers
    if root_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file


def format_action(event: str, **fields) -> str:
    """One audit line: ``timestamp | event | k=v, k=v``."""
    ts = datetime.datetime.now(datetime.timezone.utc).isoformat()
    return f"{ts} | {event} | " + ", ".join(f"{k}={v}" for k, v in fields.items())


def log_action(audit_log: Path, event: str, **fields):
    """Append human-readable audit entries."""
    line = format_action(event, **fields)
    try:
        with open(audit_log, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError:
        logger.error("Could not append to audit log %s", audit_log, exc_info=True)
    logger.debug(line)

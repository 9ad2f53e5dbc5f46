"""
pdbharvest Dual Format Logging.

This module configures the ``pdbharvest`` logger hierarchy to write both
human-readable text logs and machine-readable JSON Lines logs, with an
optional colored console echo.

Modules log through ``logging.getLogger(__name__)``; structured fields
for the JSON Lines output are passed as ``extra={"fields": {...}}``.
Handlers are thread-safe, so worker threads log directly.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


# Name of the logger every pipeline module logs under
ROOT_LOGGER = "pdbharvest"

# Attribute marking handlers installed by configure_logging
_HANDLER_TAG = "_pdbharvest_handler"


# =============================================================================
# ANSI Color Codes
# =============================================================================

class ANSIColors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    YELLOW = "\033[93m"
    GREEN = "\033[92m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


# Level to color mapping
LEVEL_COLORS = {
    logging.DEBUG: ANSIColors.GRAY,
    logging.INFO: ANSIColors.GREEN,
    logging.WARNING: ANSIColors.YELLOW,
    logging.ERROR: ANSIColors.RED,
}


# =============================================================================
# Log Path Generation
# =============================================================================

def format_wildcards_for_path(wildcards: dict[str, str]) -> str:
    """
    Format wildcards dictionary into a path-safe string.

    Args:
        wildcards: Dictionary of wildcard values.

    Returns:
        Path-safe string representation, ``"default"`` when empty.
    """
    if not wildcards:
        return "default"
    return "_".join(f"{k}={v}" for k, v in sorted(wildcards.items()))


def get_log_paths(
    run_name: str,
    wildcards: dict[str, str],
    log_dir: Path = Path("logs")
) -> tuple[Path, Path]:
    """
    Generate log file paths for a run.

    Args:
        run_name: The run name (first path component under log_dir).
        wildcards: Dictionary of values identifying the run.
        log_dir: Base directory for logs (default: "logs").

    Returns:
        Tuple of (text_log_path, jsonl_log_path).

    Example:
        >>> log_path, jsonl_path = get_log_paths("harvest", {"run": "20240101T000000Z"})
        >>> print(log_path)
        logs/harvest/run=20240101T000000Z.log
    """
    base_path = log_dir / run_name / format_wildcards_for_path(wildcards)

    return (
        base_path.with_suffix(".log"),
        base_path.with_suffix(".jsonl")
    )


def get_level_from_string(level_str: str) -> int:
    """
    Convert a level string to logging level constant.

    Unknown names fall back to INFO.
    """
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
    }
    return level_map.get(level_str.upper(), logging.INFO)


# =============================================================================
# Formatters
# =============================================================================

class TextFormatter(logging.Formatter):
    """
    Human-readable formatter.

    Format: YYYY-MM-DD HH:MM:SS [LEVEL] logger: message
    """

    def __init__(self, use_color: bool = False):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        msg = record.getMessage()
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"

        if self.use_color:
            color = LEVEL_COLORS.get(record.levelno, "")
            reset = ANSIColors.RESET
            return f"{timestamp} {color}[{record.levelname}]{reset} {record.name}: {msg}"
        return f"{timestamp} [{record.levelname}] {record.name}: {msg}"


class JsonLinesFormatter(logging.Formatter):
    """
    JSON Lines formatter.

    Format: {"ts": "ISO8601", "level": "LEVEL", "logger": "...", "thread": "...", "msg": "...", ...}
    """

    def __init__(self, wildcards: Optional[dict[str, str]] = None):
        super().__init__()
        self.wildcards = wildcards or {}

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }

        if self.wildcards:
            entry["wildcards"] = self.wildcards

        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            entry.update(fields)

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


# =============================================================================
# Configuration
# =============================================================================

def _tagged(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def reset_logging() -> None:
    """Remove and close every handler installed by configure_logging."""
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()


def configure_logging(
    run_name: str = "harvest",
    wildcards: Optional[dict[str, str]] = None,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    use_color: bool = True,
    console: bool = True
) -> tuple[Path, Path]:
    """
    Install text, JSON Lines and console handlers on the pdbharvest logger.

    Calling this again replaces the handlers from the previous call.

    Args:
        run_name: The run name used in log paths.
        wildcards: Values identifying the run (default: empty).
        log_dir: Base directory for logs (default: "logs").
        level: Logging level as string (default: "INFO").
        use_color: Whether to use ANSI colors on the console (default: True).
        console: Whether to echo records to stderr (default: True).

    Returns:
        Tuple of (text_log_path, jsonl_log_path).

    Example:
        >>> log_path, jsonl_path = configure_logging("harvest", {"run": "r1"})
        >>> logging.getLogger("pdbharvest.lib.orchestrator").info("Starting...")
    """
    if log_dir is None:
        log_dir = Path("logs")
    wildcards = wildcards or {}

    log_path, jsonl_path = get_log_paths(run_name, wildcards, log_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    reset_logging()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(get_level_from_string(level))

    text_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    text_handler.setFormatter(TextFormatter(use_color=False))
    logger.addHandler(_tagged(text_handler))

    jsonl_handler = logging.FileHandler(jsonl_path, mode="a", encoding="utf-8")
    jsonl_handler.setFormatter(JsonLinesFormatter(wildcards))
    logger.addHandler(_tagged(jsonl_handler))

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(TextFormatter(use_color=use_color))
        logger.addHandler(_tagged(console_handler))

    return log_path, jsonl_path

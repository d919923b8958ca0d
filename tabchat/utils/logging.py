"""
TABCHAT Logging Utilities - Session Logging for the Tool Engine

Overview:
---------
Centralised logging configuration for tabchat.  Every process gets a
session-scoped log file with a short session identifier so that a single
conversational exchange (model request, tool calls, tool results, final
answer) can be followed end to end.

Log Location:
-------------
- Default: the configured log_dir (~/.tabchat/logs/ unless TABCHAT_HOME_DIR moves it)
- Each run creates a timestamped log file with session ID
- A symlink 'tabchat.log' always points to the latest session
- Can be overridden via TABCHAT_LOG_DIR, like any other setting

Log Levels:
-----------
- DEBUG: Full prompts, raw model replies, tool results
- INFO: Tool calls, dispatch summaries
- WARNING: Collaborator failures surfaced to the model
- ERROR: Model client failures

Usage:
------
    from tabchat.utils.logging import get_logger, setup_logging

    log_file = setup_logging(level="DEBUG")
    logger = get_logger(__name__)
    logger.info("Loading dataset...")
"""

from __future__ import annotations

import json
import logging
import os
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence


# ============================================================================
# Constants
# ============================================================================

DEFAULT_LOG_LEVEL = "INFO"
SYMLINK_NAME = "tabchat.log"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s:%(lineno)d | %(message)s"

_logging_initialised = False
_log_file_path: Optional[Path] = None
_session_id: Optional[str] = None


# ============================================================================
# Session ID plumbing
# ============================================================================

class SessionIdFilter(logging.Filter):
    """Add session_id to all log records."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id  # type: ignore[attr-defined]
        return True


class SessionFormatter(logging.Formatter):
    """Formatter that falls back to 'N/A' when a record has no session_id."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id or "N/A"  # type: ignore[attr-defined]
        return super().format(record)


# ============================================================================
# Setup
# ============================================================================

def generate_session_id() -> str:
    """Six hex characters, unique enough to tell concurrent runs apart."""
    return uuid.uuid4().hex[:6]


def get_log_directory() -> Path:
    """The configured ``log_dir`` (``$TABCHAT_LOG_DIR``, else under ``home_dir``)."""
    from ..config import get_config

    return get_config().log_dir


def generate_log_filename(session_id: str) -> str:
    return f"tabchat_{datetime.now():%Y%m%d_%H%M%S}_{session_id}.log"


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for existing in list(logger.filters):
        logger.removeFilter(existing)


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(SessionFormatter(fmt, LOG_DATE_FORMAT))
    return handler


def _point_latest(log_dir: Path, log_file: Path) -> None:
    link = log_dir / SYMLINK_NAME
    try:
        if link.exists() or link.is_symlink():
            link.unlink()
        link.symlink_to(log_file.name)
    except OSError:
        # No symlink support (Windows without developer mode).
        pass


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console_output: bool = False,
    quiet: bool = False,
) -> Path:
    """
    Start a new logging session for the ``tabchat`` logger tree.

    Any handlers from a previous session are closed first, so calling this
    again (e.g. from tests) rotates to a fresh file.

    Parameters
    ----------
    level : str, optional
        DEBUG, INFO, WARNING or ERROR. Defaults to TABCHAT_LOG_LEVEL or INFO.
    log_dir : Path, optional
        Where session files go. Defaults to :func:`get_log_directory`.
    console_output : bool
        Mirror records to stderr.
    quiet : bool
        Wins over ``console_output``.

    Returns
    -------
    Path
        The session log file.
    """
    global _logging_initialised, _log_file_path, _session_id

    level_name = (level or os.getenv("TABCHAT_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    target_dir = log_dir or get_log_directory()
    target_dir.mkdir(parents=True, exist_ok=True)

    _session_id = generate_session_id()
    _log_file_path = target_dir / generate_log_filename(_session_id)

    root = logging.getLogger("tabchat")
    _reset(root)
    root.setLevel(numeric_level)
    root.propagate = False
    root.addFilter(SessionIdFilter(_session_id))
    root.addHandler(
        _handler(logging.FileHandler(_log_file_path, encoding="utf-8"), numeric_level, FILE_LOG_FORMAT)
    )
    if console_output and not quiet:
        root.addHandler(_handler(logging.StreamHandler(sys.stderr), numeric_level, LOG_FORMAT))

    _point_latest(target_dir, _log_file_path)
    _logging_initialised = True

    root.info(f"tabchat session {_session_id} started (level={level_name}, file={_log_file_path})")
    return _log_file_path


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``tabchat`` namespace; sets up logging on first use."""
    if not _logging_initialised:
        setup_logging()
    qualified = name if name.startswith("tabchat") else f"tabchat.{name}"
    return logging.getLogger(qualified)


def get_current_log_file() -> Optional[Path]:
    return _log_file_path


def get_session_id() -> Optional[str]:
    return _session_id


# ============================================================================
# Structured helpers
# ============================================================================

def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + f"... [TRUNCATED, {len(text)} chars total]"
    return text


def log_tool_call(
    logger: logging.Logger,
    name: str,
    args: dict[str, Any],
    row_count: int,
    headers: Sequence[str],
) -> None:
    """Log a tool invocation requested by the model."""
    logger.info(f"TOOL CALL {name}")
    logger.info(f"  args: {json.dumps(args, default=str)}")
    logger.info(f"  rows loaded: {row_count}")
    logger.debug(f"  available headers: {list(headers)}")


def log_tool_result(
    logger: logging.Logger,
    name: str,
    result: dict[str, Any],
    truncate_at: int = 2000,
) -> None:
    """Log the (unsanitised) result of a tool invocation."""
    if "error" in result:
        logger.info(f"TOOL RESULT {name}: error={result['error']}")
    text = json.dumps(result, default=str)
    logger.debug(f"TOOL RESULT ({name}):\n{_truncate(text, truncate_at)}")


def log_prompt(
    logger: logging.Logger,
    prompt_type: str,
    prompt_content: str,
    truncate_at: int = 2000,
) -> None:
    """Log a prompt being sent to the model."""
    logger.debug(f"PROMPT ({prompt_type}):\n{_truncate(prompt_content, truncate_at)}")


def log_llm_response(
    logger: logging.Logger,
    response_type: str,
    response_content: str,
    truncate_at: int = 2000,
) -> None:
    """Log a model reply."""
    logger.debug(f"LLM RESPONSE ({response_type}):\n{_truncate(response_content, truncate_at)}")


def log_dispatch_complete(
    logger: logging.Logger,
    rounds: int,
    charts: int,
    round_limit_hit: bool,
) -> None:
    """Log the summary of one dispatch loop run."""
    logger.info("-" * 60)
    logger.info("DISPATCH COMPLETE")
    logger.info(f"  Rounds: {rounds}")
    logger.info(f"  Charts: {charts}")
    if round_limit_hit:
        logger.warning("  Round limit reached with a tool call still pending")
    logger.info("-" * 60)

"""
TABCHAT Utilities Package - Cross-Cutting Helpers

Logging helpers shared by the loader, the tool engine and the CLI.  Nothing
here imports the heavier query modules.
"""

from .logging import (
    setup_logging,
    get_logger,
    get_current_log_file,
    get_session_id,
    log_tool_call,
    log_tool_result,
    log_prompt,
    log_llm_response,
    log_dispatch_complete,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_current_log_file",
    "get_session_id",
    "log_tool_call",
    "log_tool_result",
    "log_prompt",
    "log_llm_response",
    "log_dispatch_complete",
]

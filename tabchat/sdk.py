# tabchat/sdk.py
"""
TABCHAT Python SDK -- programmatic access without the CLI.

Core functions::

    from tabchat.sdk import load, ask, run_tool

    session = load("tweets.csv")
    outcome = session.ask("Which tweets got the most engagement?")
    outcome = ask("videos.json", "Plot views over time")
    stats   = run_tool("tweets.csv", "compute_column_stats", {"column": "Favorite Count"})

The model and image clients are imported lazily, so loading data and running
tools locally never touches the network.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .imaging import ImageGenerator
    from .llm import ChatModel, ImagePart
    from .query.results import DispatchOutcome, ToolResult
    from .query.session import ChatSession


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------


def load(
    source: str | Path,
    *,
    model: "ChatModel | None" = None,
    image_generator: "ImageGenerator | None" = None,
) -> "ChatSession":
    """Create a chat session over a ``.csv`` or ``.json`` file.

    Parameters
    ----------
    source:
        Path to the data file.
    model:
        Optional conversational model; the configured OpenAI-compatible
        endpoint is used when omitted.
    image_generator:
        Optional image collaborator for the ``generate_image`` tool.

    Returns
    -------
    ChatSession
        Session holding the enriched dataset and an empty conversation.
    """
    from .query.session import ChatSession

    return ChatSession(source, model=model, image_generator=image_generator)


# ---------------------------------------------------------------------------
# ask
# ---------------------------------------------------------------------------


def ask(
    source: str | Path,
    question: str,
    *,
    images: "list[ImagePart] | None" = None,
    model: "ChatModel | None" = None,
    image_generator: "ImageGenerator | None" = None,
    max_rounds: int | None = None,
) -> "DispatchOutcome":
    """Load *source* and answer one question about it."""
    session = load(source, model=model, image_generator=image_generator)
    try:
        return session.ask(question, images=images or (), max_rounds=max_rounds)
    finally:
        session.close()


# ---------------------------------------------------------------------------
# run_tool
# ---------------------------------------------------------------------------


def run_tool(
    source: str | Path,
    name: str,
    args: dict[str, Any] | None = None,
    *,
    image_generator: "ImageGenerator | None" = None,
) -> "ToolResult":
    """Execute one declared tool against *source* without a model."""
    session = load(source, image_generator=image_generator)
    try:
        return session.executor().execute(name, args or {})
    finally:
        session.close()

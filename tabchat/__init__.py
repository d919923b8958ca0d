"""
TABCHAT Package - conversational analysis of tabular data.

A language model answers questions about one loaded CSV or JSON dataset by
calling deterministic tools (statistics, value counts, top-N, time series)
against the rows.

Main Components:
    - tabchat.query: loaders, tools, dispatch loop and chat session
    - tabchat.llm / tabchat.imaging: model and image collaborators
    - tabchat.sdk: ``load`` / ``ask`` / ``run_tool`` entry points
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

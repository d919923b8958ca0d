"""Tabular query engine: loaders, tools, tool dispatch and chat sessions."""

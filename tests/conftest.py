"""Shared fixtures: isolated log directory plus scripted model and image fakes."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import pytest

# Logging initialises on first import of any tabchat module; keep it out of $HOME.
os.environ.setdefault("TABCHAT_LOG_DIR", tempfile.mkdtemp(prefix="tabchat-test-logs-"))


TWEETS_CSV = (
    "Text,Favorite Count,View Count,Created At,Language\n"
    "hello world,10,100,2024-01-03,en\n"
    "second post,5,50,2024-01-01,en\n"
    "third one,20,400,2024-01-02,de\n"
)


class ScriptedChat:
    """Chat handle that replays a fixed list of replies."""

    def __init__(self, replies: list[Any], log: dict[str, Any]) -> None:
        self._replies = list(replies)
        self.log = log

    def _next(self):
        from tabchat.llm import ModelReply

        if not self._replies:
            return ModelReply(text="done")
        return self._replies.pop(0)

    def send(self, message, images=()):
        self.log["messages"].append(message)
        self.log["images"].append(list(images))
        return self._next()

    def send_tool_result(self, name, result):
        self.log["tool_results"].append((name, result))
        return self._next()


class ScriptedModel:
    """ChatModel fake; ``replies`` may be refilled between questions."""

    def __init__(self, replies: list[Any] | None = None) -> None:
        self.replies = list(replies or [])
        self.log: dict[str, Any] = {
            "messages": [],
            "images": [],
            "tool_results": [],
            "histories": [],
            "system": [],
            "tools": [],
        }

    def start_chat(self, history, *, tools, system_instruction=""):
        self.log["histories"].append(list(history))
        self.log["system"].append(system_instruction)
        self.log["tools"].append([t.name for t in tools])
        replies, self.replies = self.replies, []
        return ScriptedChat(replies, self.log)


class FakeImageGenerator:
    def __init__(self, image: bytes = b"\x89PNG fake", error: Exception | None = None) -> None:
        self.image = image
        self.error = error
        self.calls: list[tuple[str, bytes | None]] = []

    def generate(self, prompt, anchor_image=None):
        self.calls.append((prompt, anchor_image))
        if self.error is not None:
            raise self.error
        return self.image


def tool_reply(name: str, **args: Any):
    from tabchat.llm import ModelReply, ToolRequest

    return ModelReply(tool_call=ToolRequest(name=name, args=args))


def text_reply(text: str):
    from tabchat.llm import ModelReply

    return ModelReply(text=text)


@pytest.fixture
def tweets_csv(tmp_path: Path) -> Path:
    path = tmp_path / "tweets.csv"
    path.write_text(TWEETS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def tweets_dataset():
    from tabchat.query.loaders import parse_csv_text

    return parse_csv_text(TWEETS_CSV)


@pytest.fixture
def scripted_model():
    return ScriptedModel()


@pytest.fixture
def fake_images():
    return FakeImageGenerator()

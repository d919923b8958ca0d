# tabchat/llm.py
"""Conversational model client used by the tool dispatch loop.

The loop only needs two things from a model: start a chat seeded with prior
turns and a tool menu, then exchange one message (or one tool result) at a
time, getting back text and at most one pending tool call.  ``ChatModel`` and
``ChatHandle`` describe that contract; :class:`OpenAIChatModel` implements it
against any OpenAI-compatible chat completions endpoint.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Literal, Protocol, Sequence

from pydantic import BaseModel, Field

from .utils.logging import get_logger, log_llm_response, log_prompt

if TYPE_CHECKING:
    from .config import TabchatConfig
    from .query.declarations import ToolDeclaration

_logger = get_logger(__name__)


class ModelClientError(RuntimeError):
    """Raised when the conversational model cannot be reached or misbehaves."""


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = ""


class ImagePart(BaseModel):
    """An image attached to a user message."""

    data: str  # base64
    mime_type: str = "image/png"


class ToolRequest(BaseModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ModelReply(BaseModel):
    text: str = ""
    tool_call: ToolRequest | None = None


class ChatHandle(Protocol):
    def send(self, message: str, images: Sequence[ImagePart] = ()) -> ModelReply: ...

    def send_tool_result(self, name: str, result: dict[str, Any]) -> ModelReply: ...


class ChatModel(Protocol):
    def start_chat(
        self,
        history: Sequence[ChatTurn],
        *,
        tools: Sequence["ToolDeclaration"],
        system_instruction: str = "",
    ) -> ChatHandle: ...


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        _logger.warning(f"Tool arguments are not valid JSON: {raw[:200]}")
        return {}
    if not isinstance(parsed, dict):
        _logger.warning(f"Tool arguments are not an object: {raw[:200]}")
        return {}
    return parsed


class OpenAIChat:
    """One running conversation against a chat completions endpoint."""

    def __init__(
        self,
        client: Any,
        model: str,
        messages: list[dict[str, Any]],
        tools: Sequence["ToolDeclaration"],
        temperature: float = 0.0,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._tools = [t.to_openai() for t in tools]
        self.messages = messages
        self._pending_call_id: str | None = None

    def send(self, message: str, images: Sequence[ImagePart] = ()) -> ModelReply:
        content: Any = message
        if images:
            content = [{"type": "text", "text": message}] + [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{img.mime_type};base64,{img.data}"},
                }
                for img in images
            ]
        self.messages.append({"role": "user", "content": content})
        log_prompt(_logger, "User Message", message)
        return self._complete()

    def send_tool_result(self, name: str, result: dict[str, Any]) -> ModelReply:
        if self._pending_call_id is None:
            raise ModelClientError(f"No pending tool call to answer for '{name}'")
        self.messages.append(
            {
                "role": "tool",
                "tool_call_id": self._pending_call_id,
                "content": json.dumps({"result": result}, default=str),
            }
        )
        self._pending_call_id = None
        return self._complete()

    def _complete(self) -> ModelReply:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": self.messages,
            "temperature": self._temperature,
        }
        if self._tools:
            kwargs["tools"] = self._tools
        try:
            response = self._client.chat.completions.create(**kwargs)
        except Exception as exc:
            _logger.error(f"Chat completion failed: {type(exc).__name__}: {exc}")
            raise ModelClientError(f"Chat completion failed: {exc}") from exc

        if not response.choices:
            raise ModelClientError("Chat completion returned no choices")
        message = response.choices[0].message
        text = message.content or ""
        calls = list(message.tool_calls or [])

        entry: dict[str, Any] = {"role": "assistant", "content": text or None}
        tool_call: ToolRequest | None = None
        if calls:
            first = calls[0]
            if len(calls) > 1:
                _logger.info(f"Model requested {len(calls)} tool calls; only '{first.function.name}' is executed")
            entry["tool_calls"] = [
                {
                    "id": first.id,
                    "type": "function",
                    "function": {
                        "name": first.function.name,
                        "arguments": first.function.arguments or "{}",
                    },
                }
            ]
            self._pending_call_id = first.id
            tool_call = ToolRequest(name=first.function.name, args=_parse_arguments(first.function.arguments))
        self.messages.append(entry)

        log_llm_response(
            _logger,
            "Tool Call" if tool_call else "Text",
            tool_call.model_dump_json() if tool_call else text,
        )
        return ModelReply(text=text, tool_call=tool_call)


class OpenAIChatModel:
    """:class:`ChatModel` backed by the ``openai`` client."""

    def __init__(
        self,
        model: str,
        *,
        api_key: str = "",
        api_base: str | None = None,
        temperature: float = 0.0,
        client: Any = None,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.temperature = temperature
        self._client = client

    @classmethod
    def from_config(cls, cfg: "TabchatConfig | None" = None) -> "OpenAIChatModel":
        if cfg is None:
            from .config import get_config

            cfg = get_config()
        return cls(cfg.lm, api_key=cfg.api_key, api_base=cfg.api_base, temperature=cfg.lm_temperature)

    @property
    def client(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key or None, base_url=self.api_base or None)
        return self._client

    def start_chat(
        self,
        history: Sequence[ChatTurn],
        *,
        tools: Sequence["ToolDeclaration"],
        system_instruction: str = "",
    ) -> OpenAIChat:
        messages: list[dict[str, Any]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
            log_prompt(_logger, "System Instruction", system_instruction)
        messages.extend({"role": t.role, "content": t.content} for t in history)
        return OpenAIChat(
            self.client,
            self.model,
            messages,
            tools,
            temperature=self.temperature,
        )

"""Tool dispatch: route model tool calls to the tabular tools and loop.

:class:`ToolExecutor` maps a tool name plus loosely-typed model arguments onto
one function in :mod:`tabchat.query.tools` (or the image collaborator).
:class:`ToolDispatchLoop` drives the exchange with the model: send the user
message, execute each requested tool, send back a sanitised result, and stop
when the model answers in plain text or the round cap is reached.
"""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from ..utils.logging import (
    get_logger,
    log_dispatch_complete,
    log_tool_call,
    log_tool_result,
)
from . import tools
from .declarations import TOOL_DECLARATIONS, ToolDeclaration
from .loaders import Dataset
from .results import (
    DispatchOutcome,
    GeneratedImage,
    MetricChart,
    ToolCallRecord,
    ToolError,
    ToolResult,
)

if TYPE_CHECKING:
    from ..imaging import ImageGenerator
    from ..llm import ChatModel, ChatTurn, ImagePart

_logger = get_logger(__name__)

IMAGE_ACK = "Image generated successfully. It is displayed to the user."

# Names the model may still use from older tool menus.
_TOOL_ALIASES = {
    "get_top_tweets": "get_top_rows",
    "generateImage": "generate_image",
}


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


def _as_int(value: Any, default: int) -> int:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "asc", "ascending"):
            return True
        if lowered in ("false", "0", "no", "desc", "descending", ""):
            return False
        return default
    return bool(value)


def _decode_image(data: str) -> bytes:
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    return base64.b64decode(data, validate=True)


class ToolExecutor:
    """Execute named tools against one read-only dataset."""

    def __init__(
        self,
        dataset: Dataset,
        *,
        image_generator: "ImageGenerator | None" = None,
        user_images: Sequence["ImagePart"] = (),
        default_top_n: int = 10,
        text_preview_chars: int = 150,
        numeric_ratio: float = 0.8,
    ) -> None:
        self.dataset = dataset
        self.image_generator = image_generator
        self.user_images = list(user_images)
        self.default_top_n = default_top_n
        self.text_preview_chars = text_preview_chars
        self.numeric_ratio = numeric_ratio
        self._handlers: dict[str, Callable[[dict[str, Any]], ToolResult]] = {
            "compute_column_stats": self._column_stats,
            "compute_stats_json": self._stats_json,
            "get_value_counts": self._value_counts,
            "get_top_rows": self._top_rows,
            "plot_metric_vs_time": self._metric_vs_time,
            "describe_dataset": self._describe,
            "play_video": self._play_video,
            "generate_image": self._generate_image,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    def execute(self, name: str, args: Mapping[str, Any] | None = None) -> ToolResult:
        args = dict(args or {})
        log_tool_call(_logger, name, args, len(self.dataset.rows), self.dataset.headers)
        handler = self._handlers.get(_TOOL_ALIASES.get(name, name))
        if handler is None:
            result: ToolResult = ToolError(error=f"Unknown tool: {name}")
        else:
            result = handler(args)
        log_tool_result(_logger, name, result.model_dump(mode="json"))
        return result

    def _column_stats(self, args: dict[str, Any]) -> ToolResult:
        return tools.compute_column_stats(self.dataset, _as_str(args.get("column")))

    def _stats_json(self, args: dict[str, Any]) -> ToolResult:
        return tools.compute_column_stats(self.dataset, _as_str(args.get("column")), json_source=True)

    def _value_counts(self, args: dict[str, Any]) -> ToolResult:
        return tools.get_value_counts(
            self.dataset,
            _as_str(args.get("column")),
            top_n=_as_int(args.get("top_n"), self.default_top_n),
        )

    def _top_rows(self, args: dict[str, Any]) -> ToolResult:
        return tools.get_top_rows(
            self.dataset,
            _as_str(args.get("sort_column")),
            n=_as_int(args.get("n"), self.default_top_n),
            ascending=_as_bool(args.get("ascending"), False),
            text_chars=self.text_preview_chars,
        )

    def _metric_vs_time(self, args: dict[str, Any]) -> ToolResult:
        return tools.plot_metric_vs_time(self.dataset, _as_str(args.get("metric")))

    def _describe(self, args: dict[str, Any]) -> ToolResult:
        return tools.describe_dataset(self.dataset, numeric_ratio=self.numeric_ratio)

    def _play_video(self, args: dict[str, Any]) -> ToolResult:
        return tools.play_video(self.dataset, _as_str(args.get("selector")))

    def _generate_image(self, args: dict[str, Any]) -> ToolResult:
        prompt = _as_str(args.get("prompt")).strip()
        if not prompt:
            return ToolError(error="Prompt required")
        if self.image_generator is None:
            return ToolError(error="Image generation is not configured")

        # The model cannot pass pixels in arguments, so fall back to the user's attachment.
        anchor_b64 = _as_str(args.get("anchorImageBase64")) or (
            self.user_images[0].data if self.user_images else ""
        )
        try:
            anchor = _decode_image(anchor_b64) if anchor_b64 else None
        except (binascii.Error, ValueError) as exc:
            return ToolError(error=f"Anchor image is not valid base64: {exc}")

        try:
            image = self.image_generator.generate(prompt, anchor)
        except Exception as exc:
            _logger.warning(f"Image generation failed: {type(exc).__name__}: {exc}")
            return ToolError(error=str(exc) or "Image generation failed")
        return GeneratedImage(data=base64.b64encode(image).decode("ascii"))


def sanitize_for_model(result: ToolResult, *, max_chart_points: int = 50) -> dict[str, Any]:
    """Shrink a tool result before it is sent back to the model.

    Image bytes are replaced by a short acknowledgement and charts are cut to
    *max_chart_points* points with ``truncated`` set.  *result* itself is not
    modified.
    """
    if isinstance(result, GeneratedImage):
        return {"kind": result.kind, "message": IMAGE_ACK}
    if isinstance(result, MetricChart) and len(result.data) > max_chart_points:
        clipped = result.model_copy(update={"data": result.data[:max_chart_points], "truncated": True})
        return clipped.model_dump(mode="json")
    return result.model_dump(mode="json")


def trim_history(
    history: Sequence["ChatTurn | Mapping[str, Any]"],
    *,
    turns: int = 20,
    chars: int = 8000,
) -> list["ChatTurn"]:
    """Keep the last *turns* turns, each cut to *chars* characters."""
    from ..llm import ChatTurn

    recent = list(history)[-turns:] if turns > 0 else []
    out: list[ChatTurn] = []
    for turn in recent:
        if isinstance(turn, ChatTurn):
            role, content = turn.role, turn.content
        else:
            role, content = turn.get("role"), turn.get("content")
        out.append(
            ChatTurn(
                role="user" if role == "user" else "assistant",
                content=_as_str(content)[:chars],
            )
        )
    return out


def with_column_context(message: str, headers: Sequence[str]) -> str:
    """Prefix *message* with the exact column list when a dataset is loaded."""
    if not headers:
        return message
    return f"[CSV columns: {', '.join(headers)}]\n\n{message}"


class ToolDispatchLoop:
    """Bounded model <-> tool exchange for one user message."""

    def __init__(
        self,
        model: "ChatModel",
        executor: ToolExecutor,
        *,
        max_rounds: int = 5,
        max_chart_points: int = 50,
        history_turns: int = 20,
        history_chars: int = 8000,
        tools: Sequence[ToolDeclaration] = TOOL_DECLARATIONS,
    ) -> None:
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.model = model
        self.executor = executor
        self.max_rounds = max_rounds
        self.max_chart_points = max_chart_points
        self.history_turns = history_turns
        self.history_chars = history_chars
        self.tools = list(tools)

    def run(
        self,
        history: Sequence["ChatTurn | Mapping[str, Any]"],
        message: str,
        *,
        images: Sequence["ImagePart"] = (),
        system_instruction: str = "",
    ) -> DispatchOutcome:
        chat = self.model.start_chat(
            trim_history(history, turns=self.history_turns, chars=self.history_chars),
            tools=self.tools,
            system_instruction=system_instruction,
        )
        reply = chat.send(with_column_context(message, self.executor.dataset.headers), images)

        charts: list[MetricChart] = []
        calls: list[ToolCallRecord] = []
        rounds = 0
        while reply.tool_call is not None and rounds < self.max_rounds:
            request = reply.tool_call
            result = self.executor.execute(request.name, request.args)
            calls.append(ToolCallRecord(name=request.name, args=dict(request.args), result=result))
            if isinstance(result, MetricChart):
                charts.append(result)
            reply = chat.send_tool_result(
                request.name,
                sanitize_for_model(result, max_chart_points=self.max_chart_points),
            )
            rounds += 1

        round_limit_hit = reply.tool_call is not None
        log_dispatch_complete(_logger, rounds, len(charts), round_limit_hit)
        return DispatchOutcome(
            text=reply.text,
            charts=charts,
            tool_calls=calls,
            rounds=rounds,
            round_limit_hit=round_limit_hit,
        )

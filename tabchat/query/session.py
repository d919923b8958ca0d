"""Chat session management."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence

from ..config import TabchatConfig, get_config
from ..records import ExchangeRecord
from ..utils.logging import get_logger
from .dispatch import ToolDispatchLoop, ToolExecutor
from .loaders import Dataset, SourceMeta, dataset_from_records, load_source, parse_csv_text
from .results import DispatchOutcome
from .tools import build_slim_csv, enrich_with_engagement, summarize_dataset

if TYPE_CHECKING:
    from ..imaging import ImageGenerator
    from ..llm import ChatModel, ImagePart

_logger = get_logger(__name__)


class ChatSession:
    """Conversation over one loaded dataset.

    The dataset is replaced wholesale by each ``load_*`` call and never
    mutated by a question.  The engagement column is added at load time, so
    every tool call sees the same enriched rows.

    Parameters
    ----------
    source:
        Optional ``.csv`` / ``.json`` path loaded immediately.
    model:
        Conversational model; defaults to :class:`~tabchat.llm.OpenAIChatModel`
        built from config on first use.
    image_generator:
        Image collaborator for ``generate_image``; defaults to
        :class:`~tabchat.imaging.OpenAIImageGenerator`.
    config:
        Settings override; defaults to :func:`~tabchat.config.get_config`.
    """

    def __init__(
        self,
        source: Path | str | None = None,
        *,
        model: "ChatModel | None" = None,
        image_generator: "ImageGenerator | None" = None,
        config: TabchatConfig | None = None,
    ) -> None:
        self._config = config or get_config()
        self._model = model
        self._image_generator = image_generator
        self._dataset = Dataset()
        self._source: SourceMeta | None = None
        self._summary = ""
        self._conversation: list[dict[str, str]] = []
        self._records: list[ExchangeRecord] = []
        self._closed = False

        if source is not None:
            self.load_path(source)

    # -- loading ---------------------------------------------------------

    def _install(self, meta: SourceMeta, dataset: Dataset) -> SourceMeta:
        if self._closed:
            raise ValueError("Cannot load data into a closed session.")
        self._dataset = enrich_with_engagement(dataset)
        self._summary = summarize_dataset(self._dataset, numeric_ratio=self._config.numeric_ratio)
        self._source = meta.model_copy(update={"columns": len(self._dataset.headers)})
        return self._source

    def load_path(self, path: Path | str) -> SourceMeta:
        """Load a ``.csv`` or ``.json`` file, replacing the current dataset."""
        meta, dataset = load_source(path)
        return self._install(meta, dataset)

    def load_text(self, text: str, name: str = "pasted.csv") -> SourceMeta:
        """Load CSV text held in memory."""
        dataset = parse_csv_text(text)
        meta = SourceMeta(
            name=name,
            format="csv",
            size=len(text.encode("utf-8")),
            rows=len(dataset.rows),
            columns=len(dataset.headers),
            preview=text[:200],
        )
        return self._install(meta, dataset)

    def load_records(self, records: Any, name: str = "records.json") -> SourceMeta:
        """Load JSON records (a list of objects, or ``{"videos": [...]}``)."""
        dataset = dataset_from_records(records)
        meta = SourceMeta(
            name=name,
            format="json",
            size=0,
            rows=len(dataset.rows),
            columns=len(dataset.headers),
            preview=f"{len(dataset.rows)} records: {dataset.headers}"[:200],
        )
        return self._install(meta, dataset)

    # -- accessors -------------------------------------------------------

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def source(self) -> SourceMeta | None:
        return self._source

    @property
    def catalog(self) -> list[SourceMeta]:
        """Metadata for the loaded source (empty before any load)."""
        return [self._source] if self._source else []

    @property
    def summary(self) -> str:
        return self._summary

    @property
    def conversation(self) -> list[dict[str, str]]:
        """Conversation history as list of {role, content} dicts."""
        return list(self._conversation)

    @property
    def records(self) -> list[ExchangeRecord]:
        return list(self._records)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def model(self) -> "ChatModel":
        if self._model is None:
            from ..llm import OpenAIChatModel

            self._model = OpenAIChatModel.from_config(self._config)
        return self._model

    @property
    def image_generator(self) -> "ImageGenerator":
        if self._image_generator is None:
            from ..imaging import OpenAIImageGenerator

            self._image_generator = OpenAIImageGenerator.from_config(self._config)
        return self._image_generator

    # -- conversation ----------------------------------------------------

    def add_turn(self, role: str, content: str) -> None:
        """Append a conversation turn.

        Raises
        ------
        ValueError
            If the session is closed.
        """
        if self._closed:
            raise ValueError("Cannot add turns to a closed session.")
        self._conversation.append({"role": role, "content": content})

    def system_instruction(self) -> str:
        """Configured prompt, then the dataset profile, then the optional slim CSV."""
        parts: list[str] = []
        prompt = self._config.load_system_prompt()
        if prompt:
            parts.append(prompt)
        if self._summary:
            parts.append(
                "The user has loaded a dataset. Use the exact column names below in every tool call.\n\n"
                + self._summary
            )
        if self._config.include_slim_csv:
            slim = build_slim_csv(self._dataset)
            if slim:
                parts.append(f"Key columns of the loaded data:\n```csv\n{slim}\n```")
        return "\n\n".join(parts)

    def executor(self, images: Sequence["ImagePart"] = ()) -> ToolExecutor:
        cfg = self._config
        return ToolExecutor(
            self._dataset,
            image_generator=self.image_generator,
            user_images=images,
            default_top_n=cfg.default_top_n,
            text_preview_chars=cfg.text_preview_chars,
            numeric_ratio=cfg.numeric_ratio,
        )

    def ask(
        self,
        message: str,
        *,
        images: Sequence["ImagePart"] = (),
        max_rounds: int | None = None,
    ) -> DispatchOutcome:
        """Answer one user message, running tools as the model requests them.

        Model-client failures propagate unchanged; nothing is recorded for a
        failed question.
        """
        if self._closed:
            raise ValueError("Cannot ask on a closed session.")
        if not message or not message.strip():
            raise ValueError("Message must not be empty.")

        cfg = self._config
        loop = ToolDispatchLoop(
            self.model,
            self.executor(images),
            max_rounds=max_rounds or cfg.max_tool_rounds,
            max_chart_points=cfg.max_chart_points,
            history_turns=cfg.history_turns,
            history_chars=cfg.history_chars,
        )
        _logger.info(f"Question on {self._source.name if self._source else 'no data'}: {message[:120]}")
        outcome = loop.run(
            self._conversation,
            message,
            images=images,
            system_instruction=self.system_instruction(),
        )

        self.add_turn("user", message)
        self.add_turn("assistant", outcome.text)
        self._records.append(
            ExchangeRecord.from_outcome(
                message,
                outcome,
                source=self._source.name if self._source else None,
            )
        )
        return outcome

    def close(self) -> None:
        """Close the session and drop the loaded data."""
        self._closed = True
        self._dataset = Dataset()
        self._summary = ""

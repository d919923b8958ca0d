# tabchat/config.py
"""
TABCHAT Configuration. Single source of truth via Pydantic Settings.

Resolution order: CLI flags > env vars (TABCHAT_*) > .env file > defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TabchatConfig(BaseSettings):
    """Central configuration for the tabchat tool engine."""

    model_config = SettingsConfigDict(
        env_prefix="TABCHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- LLM ---
    lm: str = "gpt-4o-mini"
    api_key: str = ""
    api_base: str = "https://api.openai.com/v1"
    lm_temperature: float = 0.0

    # --- Image generation ---
    image_model: str = "gpt-image-1"

    # --- Tool dispatch ---
    # Hard cap on model -> tool -> model round trips per question.
    max_tool_rounds: int = Field(default=5, ge=1)
    # Chart payloads longer than this are clipped before going back to the model.
    max_chart_points: int = Field(default=50, ge=1)
    history_turns: int = 20
    history_chars: int = 8000

    # --- Aggregation ---
    default_top_n: int = 10
    text_preview_chars: int = 150
    numeric_ratio: float = Field(default=0.8, ge=0.0, le=1.0)

    # --- Prompting ---
    system_prompt_file: Path | None = None
    include_slim_csv: bool = False

    # --- Paths ---
    home_dir: Path = Field(default_factory=lambda: Path.home() / ".tabchat")
    # Unset means a subdirectory of home_dir.
    log_dir: Path | None = None
    records_dir: Path | None = None

    @model_validator(mode="after")
    def _derive_paths(self) -> "TabchatConfig":
        if self.log_dir is None:
            self.log_dir = self.home_dir / "logs"
        if self.records_dir is None:
            self.records_dir = self.home_dir / "records"
        return self

    def records_file(self, source: Path) -> Path:
        """Default JSONL file for exchanges about *source*."""
        return self.records_dir / f"{Path(source).stem}.jsonl"

    def load_system_prompt(self) -> str:
        """Return the configured system prompt text, or an empty string."""
        if self.system_prompt_file is None:
            return ""
        try:
            return self.system_prompt_file.read_text(encoding="utf-8").strip()
        except OSError:
            return ""


@lru_cache(maxsize=1)
def get_config() -> TabchatConfig:
    """Return the global config singleton."""
    return TabchatConfig()

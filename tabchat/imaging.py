# tabchat/imaging.py
"""Image generation collaborator for the ``generate_image`` tool."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any, Protocol

from .utils.logging import get_logger

if TYPE_CHECKING:
    from .config import TabchatConfig

_logger = get_logger(__name__)


class ImageGenerationError(RuntimeError):
    """Raised when no image could be produced."""


class ImageGenerator(Protocol):
    def generate(self, prompt: str, anchor_image: bytes | None = None) -> bytes: ...


class OpenAIImageGenerator:
    """Text-to-image, or image edit when an anchor image is supplied."""

    def __init__(
        self,
        model: str = "gpt-image-1",
        *,
        api_key: str = "",
        api_base: str | None = None,
        client: Any = None,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self._client = client

    @classmethod
    def from_config(cls, cfg: "TabchatConfig | None" = None) -> "OpenAIImageGenerator":
        if cfg is None:
            from .config import get_config

            cfg = get_config()
        return cls(cfg.image_model, api_key=cfg.api_key, api_base=cfg.api_base)

    @property
    def client(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key or None, base_url=self.api_base or None)
        return self._client

    def generate(self, prompt: str, anchor_image: bytes | None = None) -> bytes:
        if not prompt or not prompt.strip():
            raise ImageGenerationError("Prompt required")

        kwargs: dict[str, Any] = {"model": self.model, "prompt": prompt}
        # dall-e models return URLs unless asked for base64; gpt-image always returns base64.
        if self.model.startswith("dall-e"):
            kwargs["response_format"] = "b64_json"

        if anchor_image:
            _logger.info(f"Editing anchor image ({len(anchor_image)} bytes) with {self.model}")
            response = self.client.images.edit(image=("anchor.png", anchor_image, "image/png"), **kwargs)
        else:
            _logger.info(f"Generating image with {self.model}")
            response = self.client.images.generate(n=1, **kwargs)

        data = getattr(response, "data", None) or []
        b64 = getattr(data[0], "b64_json", None) if data else None
        if not b64:
            raise ImageGenerationError(
                "Image generation failed: no image returned. The model may have blocked the content."
            )
        return base64.b64decode(b64)

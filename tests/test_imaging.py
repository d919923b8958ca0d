"""Tests for the OpenAI image adapter (no network)."""

from __future__ import annotations

import base64
from types import SimpleNamespace

import pytest


class FakeImages:
    def __init__(self, b64=None):
        self.b64 = b64
        self.calls = []

    def _response(self):
        return SimpleNamespace(data=[SimpleNamespace(b64_json=self.b64)] if self.b64 else [])

    def generate(self, **kwargs):
        self.calls.append(("generate", kwargs))
        return self._response()

    def edit(self, **kwargs):
        self.calls.append(("edit", kwargs))
        return self._response()


def _generator(b64, model="gpt-image-1"):
    from tabchat.imaging import OpenAIImageGenerator

    images = FakeImages(b64)
    return OpenAIImageGenerator(model, client=SimpleNamespace(images=images)), images


class TestOpenAIImageGenerator:
    def test_text_to_image(self):
        gen, images = _generator(base64.b64encode(b"png-bytes").decode())
        assert gen.generate("a lighthouse") == b"png-bytes"
        kind, kwargs = images.calls[0]
        assert kind == "generate"
        assert kwargs["prompt"] == "a lighthouse"
        assert "response_format" not in kwargs

    def test_anchor_uses_edit(self):
        gen, images = _generator(base64.b64encode(b"edited").decode())
        assert gen.generate("make it night", b"anchor") == b"edited"
        kind, kwargs = images.calls[0]
        assert kind == "edit"
        assert kwargs["image"][1] == b"anchor"

    def test_dalle_requests_base64(self):
        gen, images = _generator(base64.b64encode(b"x").decode(), model="dall-e-3")
        gen.generate("cat")
        assert images.calls[0][1]["response_format"] == "b64_json"

    def test_no_image_returned(self):
        from tabchat.imaging import ImageGenerationError

        gen, _ = _generator(None)
        with pytest.raises(ImageGenerationError, match="no image returned"):
            gen.generate("blocked prompt")

    def test_empty_prompt(self):
        from tabchat.imaging import ImageGenerationError

        gen, images = _generator("eA==")
        with pytest.raises(ImageGenerationError):
            gen.generate("  ")
        assert images.calls == []

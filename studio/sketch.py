"""Sketch-to-image rendering and follow-up edits via the google-genai SDK."""

from __future__ import annotations

import base64
import logging
import os
import re
from typing import Any

from prompts.templates import SKETCH_EDIT_PROMPT, SKETCH_PROMPT
from studio.generation import IMAGE_MODEL, GenerationError
from studio.models import ASPECT_RATIOS, ContextOption, StyleOption

logger = logging.getLogger(__name__)

_DATA_PREFIX = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,")


def clean_base64(data: str) -> str:
    """Strip a ``data:image/...;base64,`` prefix if present."""
    return _DATA_PREFIX.sub("", data)


def extract_image_from_response(response: Any) -> str:
    """First inline image of an SDK response as a PNG data URL."""
    candidates = getattr(response, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    parts = getattr(content, "parts", None)
    if not parts:
        raise GenerationError("No content parts in response")

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            data = inline.data
            if isinstance(data, bytes):
                data = base64.b64encode(data).decode("ascii")
            return f"data:image/png;base64,{data}"

    for part in parts:
        text = getattr(part, "text", None)
        if text:
            raise GenerationError(f"Model returned text instead of image: {text}")

    raise GenerationError("No image generated.")


class SketchService:
    """Talks to Gemini directly (not through the proxy) with a lazily created client."""

    def __init__(self, api_key: str | None = None, model: str = IMAGE_MODEL) -> None:
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY", "")
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ValueError("GEMINI_API_KEY is not set in environment variables")
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def available(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @staticmethod
    def _contents(prompt: str, image: str) -> list[dict]:
        return [{
            "role": "user",
            "parts": [
                {"text": prompt},
                {"inline_data": {"mime_type": "image/png", "data": base64.b64decode(clean_base64(image))}},
            ],
        }]

    def generate_image_from_sketch(
        self,
        sketch: str,
        context: ContextOption | str,
        style: StyleOption | str,
        aspect_ratio: str = "16:9",
        additional_prompt: str = "",
    ) -> str:
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {aspect_ratio}")
        prompt = SKETCH_PROMPT.substitute(
            context=ContextOption(context).value,
            style=StyleOption(style).value,
            additional=additional_prompt,
        )
        response = self._get_client().models.generate_content(
            model=self.model,
            contents=self._contents(prompt, sketch),
            config={"image_config": {"aspect_ratio": aspect_ratio}},
        )
        image = extract_image_from_response(response)
        logger.info("Rendered sketch as %s / %s", context, style)
        return image

    def edit_generated_image(self, image: str, instruction: str) -> str:
        if not instruction.strip():
            raise ValueError("Please describe the edit.")
        prompt = SKETCH_EDIT_PROMPT.substitute(instruction=instruction)
        response = self._get_client().models.generate_content(
            model=self.model,
            contents=self._contents(prompt, image),
        )
        return extract_image_from_response(response)

"""Image generation: text-to-image, image-to-image and edit modes."""

from __future__ import annotations

import logging
from enum import Enum

from studio.generation import IMAGE_MODEL, GenerationError, ProxyClient, extract_image
from studio.history import ContentHistory
from studio.imaging import inline_part
from studio.models import ASPECT_RATIOS

logger = logging.getLogger(__name__)


class ImageMode(str, Enum):
    TEXT = "TEXT"
    IMG2IMG = "IMG2IMG"
    EDIT = "EDIT"


class ImageGenerator:
    def __init__(self, proxy: ProxyClient, history: ContentHistory | None = None) -> None:
        self.proxy = proxy
        self.history = history

    def build_request(
        self,
        prompt: str,
        mode: ImageMode | str = ImageMode.TEXT,
        aspect_ratio: str = "1:1",
        reference_image: str | None = None,
    ) -> dict:
        """Validate inputs and return the generateContent payload."""
        mode = ImageMode(mode)
        if not prompt or not prompt.strip():
            raise ValueError("Please enter a prompt.")
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {aspect_ratio}")
        if mode != ImageMode.TEXT and not reference_image:
            raise ValueError("Please upload a reference image for this mode.")

        parts: list[dict] = []
        # Reference image goes first; the model reads part order as context.
        if mode != ImageMode.TEXT:
            parts.append(inline_part(reference_image))
        parts.append({"text": prompt})

        return {
            "model": IMAGE_MODEL,
            "contents": [{"role": "user", "parts": parts}],
            "config": {"imageConfig": {"aspectRatio": aspect_ratio}},
        }

    def generate(
        self,
        prompt: str,
        mode: ImageMode | str = ImageMode.TEXT,
        aspect_ratio: str = "1:1",
        reference_image: str | None = None,
    ) -> str:
        """Generate an image and return it as a data URL. Saved to history when available."""
        request = self.build_request(prompt, mode, aspect_ratio, reference_image)
        response = self.proxy.generate_content(**request)

        image_url = extract_image(response)
        if not image_url:
            raise GenerationError("No image generated.")

        mode = ImageMode(mode)
        logger.info("Generated %s image (%s)", mode.value, aspect_ratio)
        if self.history is not None:
            self.history.save_image(
                prompt=prompt,
                image_url=image_url,
                style=mode.value,
                config={"aspectRatio": aspect_ratio, "mode": mode.value},
            )
        return image_url

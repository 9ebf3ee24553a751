"""YouTube thumbnail composer: idea generation and the final composite render."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prompts.templates import (
    THUMBNAIL_BACKGROUND_IDEA,
    THUMBNAIL_ELEMENT_IDEA,
    THUMBNAIL_TEXT_IDEA,
)
from studio.generation import IMAGE_MODEL, TEXT_MODEL, GenerationError, ProxyClient, extract_image, extract_text
from studio.history import ContentHistory
from studio.imaging import inline_part
from studio.models import ASPECT_RATIOS

logger = logging.getLogger(__name__)

MISSING_TOPIC = "Please enter a Video Topic in the 'Content Context' field above first."
MISSING_CONTENT = "Please define content (text or image) for background or elements."


@dataclass
class ThumbnailSpec:
    topic: str = ""
    aspect_ratio: str = "16:9"
    background_prompt: str = ""
    background_image: str | None = None
    element_prompt: str = ""
    element_image: str | None = None
    text_overlay: str = ""
    text_style: str = "Bold & Modern"

    def validate(self) -> None:
        if not (self.background_prompt or self.element_prompt or self.background_image or self.element_image):
            raise ValueError(MISSING_CONTENT)
        if self.aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {self.aspect_ratio}")

    def to_config(self) -> dict:
        return {
            "aspectRatio": self.aspect_ratio,
            "background": self.background_prompt,
            "mainElement": self.element_prompt,
            "textOverlay": self.text_overlay,
            "textStyle": self.text_style,
        }


def build_thumbnail_prompt(spec: ThumbnailSpec) -> str:
    prompt = f"Create a high-quality, professional YouTube thumbnail. Aspect Ratio {spec.aspect_ratio}."
    if spec.background_prompt:
        prompt += f"\nBackground Context: {spec.background_prompt}."
    if spec.background_image:
        prompt += "\n(Use the first provided image as a visual reference/style for the background)."
    if spec.element_prompt:
        prompt += f"\nForeground Element/Subject Context: {spec.element_prompt}."
    if spec.element_image:
        prompt += "\n(Use the second provided image as the main subject/element)."
    if spec.text_overlay:
        prompt += (
            f'\nText Overlay: The image MUST include the text "{spec.text_overlay}" clearly written '
            f"in a {spec.text_style} font style. The text should be legible, high-contrast, "
            "and integrated into the composition."
        )
    return prompt


def build_thumbnail_parts(spec: ThumbnailSpec) -> list[dict]:
    parts: list[dict] = []
    if spec.background_image:
        parts.append(inline_part(spec.background_image))
    if spec.element_image:
        parts.append(inline_part(spec.element_image))
    parts.append({"text": build_thumbnail_prompt(spec)})
    return parts


class ThumbnailEngine:
    def __init__(self, proxy: ProxyClient, history: ContentHistory | None = None) -> None:
        self.proxy = proxy
        self.history = history

    def _idea(self, template, topic: str) -> str:
        if not topic or not topic.strip():
            raise ValueError(MISSING_TOPIC)
        response = self.proxy.generate_content(model=TEXT_MODEL, contents=template.substitute(topic=topic))
        return extract_text(response).strip()

    def suggest_text(self, topic: str) -> str:
        return self._idea(THUMBNAIL_TEXT_IDEA, topic)

    def suggest_background(self, topic: str) -> str:
        return self._idea(THUMBNAIL_BACKGROUND_IDEA, topic)

    def suggest_element(self, topic: str) -> str:
        return self._idea(THUMBNAIL_ELEMENT_IDEA, topic)

    def generate(self, spec: ThumbnailSpec) -> str:
        spec.validate()
        response = self.proxy.generate_content(
            model=IMAGE_MODEL,
            contents=[{"role": "user", "parts": build_thumbnail_parts(spec)}],
            config={"imageConfig": {"aspectRatio": spec.aspect_ratio}},
        )
        image_url = extract_image(response)
        if not image_url:
            raise GenerationError("No image generated.")

        logger.info("Generated thumbnail for topic %r", spec.topic)
        if self.history is not None:
            self.history.save_thumbnail(
                prompt=spec.topic or "Untitled Thumbnail",
                image_url=image_url,
                platform="YouTube",
                config=spec.to_config(),
            )
        return image_url

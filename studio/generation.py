"""Client for the serverless generation proxy and helpers for its responses."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from studio.config import DEFAULT_PROXY_FUNCTION
from studio.platform import PlatformClient

logger = logging.getLogger(__name__)

IMAGE_MODEL = "gemini-2.5-flash-image"
TEXT_MODEL = "gemini-3-flash-preview"
SEARCH_MODEL = "gemini-1.5-pro"
VIDEO_MODEL = "veo-3.1-fast-generate-preview"
EMBEDDING_MODEL = "text-embedding-004"


class GenerationError(RuntimeError):
    """The proxy (or the upstream model API) reported an error."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.details = details


def upstream_error_message(data: Any, default: str = "Gemini API error") -> str:
    """Message from an ``{"error": ...}`` body, whether ``error`` is a string or an object."""
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or default)
    return str(error or default)


class ProxyClient:
    """Invokes the generation proxy function with ``{action, ...payload}`` bodies."""

    def __init__(self, platform: PlatformClient, function_name: str = DEFAULT_PROXY_FUNCTION) -> None:
        self.platform = platform
        self.function_name = function_name

    def invoke(self, action: str, **payload: Any) -> dict:
        body = {"action": action}
        body.update({k: v for k, v in payload.items() if v is not None})
        logger.debug("Proxy call %s", action)
        data = self.platform.invoke_function(self.function_name, body)
        if isinstance(data, dict) and data.get("error"):
            raise GenerationError(upstream_error_message(data), details=data.get("details", data))
        return data

    def generate_content(
        self,
        model: str,
        contents: Any,
        config: dict | None = None,
        system_instruction: str | None = None,
        tools: list[dict] | None = None,
    ) -> dict:
        return self.invoke(
            "generateContent",
            model=model,
            contents=contents,
            config=config,
            systemInstruction=system_instruction,
            tools=tools,
        )

    def generate_videos(
        self,
        model: str,
        prompt: str,
        image: dict | None = None,
        config: dict | None = None,
    ) -> dict:
        return self.invoke("generateVideos", model=model, prompt=prompt, image=image, config=config)

    def get_videos_operation(self, operation: dict) -> dict:
        return self.invoke("getVideosOperation", operation=operation)

    def embed_content(self, model: str, text: str) -> list[float]:
        data = self.invoke("embedContent", model=model, contents=text)
        return list((data.get("embedding") or {}).get("values") or [])


def _first_parts(response: dict) -> list[dict]:
    candidates = response.get("candidates") or []
    if not candidates:
        return []
    return (candidates[0].get("content") or {}).get("parts") or []


def extract_text(response: dict) -> str:
    for part in _first_parts(response):
        if part.get("text"):
            return part["text"]
    return response.get("text") or ""


def extract_image(response: dict) -> str | None:
    """Return the first inline image of a generateContent response as a data URL."""
    for part in _first_parts(response):
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            return f"data:{mime};base64,{inline['data']}"
    return None


def poll_video_operation(
    client: ProxyClient,
    operation: dict,
    interval: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """Re-fetch a long-running video operation until it reports ``done``."""
    polls = 0
    while not operation.get("done"):
        sleep(interval)
        operation = client.get_videos_operation(operation)
        polls += 1
        logger.debug("Video operation %s poll %d", operation.get("name"), polls)
    logger.info("Video operation finished after %d polls", polls)
    return operation


def video_uri(operation: dict) -> str | None:
    """Download URI of the first generated video, for either response shape."""
    response = operation.get("response") or {}
    videos = response.get("generatedVideos")
    if videos:
        return (videos[0].get("video") or {}).get("uri")
    samples = (response.get("generateVideoResponse") or {}).get("generatedSamples")
    if samples:
        return (samples[0].get("video") or {}).get("uri")
    return None

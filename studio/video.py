"""Video studio: text-to-video and image-to-video through the long-running Veo API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum

from prompts.templates import CAMERA_MOTIONS, VIDEO_ASPECT_RATIOS, VIDEO_DURATIONS
from studio.generation import (
    VIDEO_MODEL,
    GenerationError,
    ProxyClient,
    poll_video_operation,
    video_uri,
)
from studio.history import ContentHistory
from studio.imaging import split_data_url

logger = logging.getLogger(__name__)


class VideoMode(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"


def with_api_key(uri: str, api_key: str) -> str:
    """Append the API key so the download link is directly playable."""
    if not api_key:
        return uri
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}key={api_key}"


class VideoStudio:
    def __init__(
        self,
        proxy: ProxyClient,
        history: ContentHistory | None = None,
        api_key: str = "",
        poll_interval: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.proxy = proxy
        self.history = history
        self.api_key = api_key
        self.poll_interval = poll_interval
        self._sleep = sleep

    def build_request(
        self,
        prompt: str,
        mode: VideoMode | str = VideoMode.TEXT,
        aspect_ratio: str = "16:9",
        camera_motion: str = "Pan",
        source_image: str | None = None,
    ) -> dict:
        mode = VideoMode(mode)
        if not prompt or not prompt.strip():
            raise ValueError("Please enter a prompt.")
        if mode == VideoMode.IMAGE and not source_image:
            raise ValueError("Please upload a source image for Image-to-Video.")
        if camera_motion not in CAMERA_MOTIONS:
            raise ValueError(f"Unsupported camera motion: {camera_motion}")
        if aspect_ratio not in VIDEO_ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {aspect_ratio}")

        image = None
        if mode == VideoMode.IMAGE:
            _, payload = split_data_url(source_image)
            image = {"imageBytes": payload, "mimeType": "image/png"}

        return {
            "model": VIDEO_MODEL,
            "prompt": f"{prompt} (Camera Motion: {camera_motion})",
            "image": image,
            "config": {
                "numberOfVideos": 1,
                "resolution": "720p" if image else "1080p",
                "aspectRatio": aspect_ratio,
            },
        }

    def generate(
        self,
        prompt: str,
        mode: VideoMode | str = VideoMode.TEXT,
        aspect_ratio: str = "16:9",
        duration: str = "4s",
        camera_motion: str = "Pan",
        source_image: str | None = None,
    ) -> str:
        """Start a video job, wait for it and return the playable URL."""
        if duration not in VIDEO_DURATIONS:
            raise ValueError(f"Unsupported duration: {duration}")
        request = self.build_request(prompt, mode, aspect_ratio, camera_motion, source_image)

        operation = self.proxy.generate_videos(**request)
        logger.info("Video operation started: %s", operation.get("name"))
        operation = poll_video_operation(self.proxy, operation, self.poll_interval, sleep=self._sleep)

        uri = video_uri(operation)
        if not uri:
            raise GenerationError("Video generation finished without a video.", details=operation)

        url = with_api_key(uri, self.api_key)
        if self.history is not None:
            self.history.save_video(
                prompt=prompt,
                video_url=url,
                model=VIDEO_MODEL,
                config={
                    "aspectRatio": aspect_ratio,
                    "duration": duration,
                    "cameraMotion": camera_motion,
                    "mode": VideoMode(mode).value,
                },
            )
        return url

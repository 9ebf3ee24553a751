"""Image helpers: data-URL conversion and sketch/result comparison images."""

from __future__ import annotations

import base64
import io
import logging
import re

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


def split_data_url(url: str, default_mime: str = "image/png") -> tuple[str, str]:
    """Return ``(mime_type, base64_payload)``. Plain base64 gets the default mime."""
    match = _DATA_URL.match(url)
    if match:
        return match.group("mime"), match.group("data")
    return default_mime, url


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def image_to_data_url(image: Image.Image, fmt: str = "PNG") -> str:
    buffer = io.BytesIO()
    image.save(buffer, fmt)
    return to_data_url(buffer.getvalue(), f"image/{fmt.lower()}")


def data_url_to_bytes(url: str) -> bytes:
    _, payload = split_data_url(url)
    return base64.b64decode(payload)


def data_url_to_image(url: str) -> Image.Image:
    image = Image.open(io.BytesIO(data_url_to_bytes(url)))
    image.load()
    return image


def inline_part(url: str) -> dict:
    """A generateContent ``inlineData`` part for a data URL or raw base64 string."""
    mime, payload = split_data_url(url)
    return {"inlineData": {"mimeType": mime, "data": payload}}


COMPARISON_LABELS = ("Sketch", "Rendered")
LABEL_BAND = 40


def _flatten(image: Image.Image) -> Image.Image:
    """RGB copy with any transparency composited onto white."""
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def create_comparison_image(
    sketch: Image.Image,
    result_url: str,
    labels: tuple[str, str] | None = COMPARISON_LABELS,
    gap: int = 10,
) -> Image.Image:
    """The sketch next to the rendered data-URL result, scaled to the sketch's height."""
    panes = [_flatten(sketch), _flatten(data_url_to_image(result_url))]
    height = sketch.height
    panes = [
        pane if pane.height == height
        else pane.resize((max(1, round(pane.width * height / pane.height)), height), Image.LANCZOS)
        for pane in panes
    ]

    band = LABEL_BAND if labels else 0
    width = sum(pane.width for pane in panes) + gap
    sheet = Image.new("RGB", (width, height + band), (255, 255, 255))
    draw = ImageDraw.Draw(sheet)
    font = ImageFont.load_default()

    x = 0
    for index, pane in enumerate(panes):
        sheet.paste(pane, (x, 0))
        if labels:
            left, _, right, _ = draw.textbbox((0, 0), labels[index], font=font)
            draw.text((x + (pane.width - (right - left)) // 2, height + 12), labels[index], fill=(0, 0, 0), font=font)
        x += pane.width + gap

    logger.debug("Comparison sheet %dx%d", sheet.width, sheet.height)
    return sheet

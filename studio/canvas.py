"""Raster drawing canvas with pen/eraser strokes and a bounded undo/redo history."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from PIL import Image, ImageDraw

from studio.imaging import image_to_data_url

logger = logging.getLogger(__name__)

MAX_HISTORY = 20
MIN_LINE_WIDTH = 1
MAX_LINE_WIDTH = 20
DEFAULT_LINE_WIDTH = 3

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
TOOLS = ("pen", "eraser")


@dataclass
class PointerEvent:
    """Mouse or touch event in client (viewport) coordinates."""

    client_x: float = 0.0
    client_y: float = 0.0
    touches: list[tuple[float, float]] | None = None


@dataclass
class Rect:
    left: float
    top: float


def canvas_coordinates(event: PointerEvent, rect: Rect) -> tuple[float, float]:
    """Map a pointer event to canvas space; touch events use the first touch."""
    if event.touches:
        client_x, client_y = event.touches[0]
    else:
        client_x, client_y = event.client_x, event.client_y
    return client_x - rect.left, client_y - rect.top


@dataclass
class Stroke:
    points: list[tuple[float, float]] = field(default_factory=list)
    tool: str = "pen"
    width: int = DEFAULT_LINE_WIDTH


class DrawingCanvas:
    def __init__(self, width: int = 800, height: int = 450) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Canvas size must be positive")
        self.image = Image.new("RGB", (width, height), WHITE)
        self.history: list[Image.Image] = [self.image.copy()]
        self.step = 0
        self._tool = "pen"
        self._line_width = DEFAULT_LINE_WIDTH
        self.is_drawing = False
        self._last: tuple[float, float] | None = None

    # --- settings ---

    @property
    def tool(self) -> str:
        return self._tool

    @tool.setter
    def tool(self, value: str) -> None:
        if value not in TOOLS:
            raise ValueError(f"Unknown tool: {value}")
        self._tool = value

    @property
    def line_width(self) -> int:
        return self._line_width

    @line_width.setter
    def line_width(self, value: int) -> None:
        self._line_width = max(MIN_LINE_WIDTH, min(MAX_LINE_WIDTH, int(value)))

    @property
    def color(self) -> tuple[int, int, int]:
        return WHITE if self._tool == "eraser" else BLACK

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    # --- drawing ---

    def _dot(self, x: float, y: float) -> None:
        r = self._line_width / 2
        ImageDraw.Draw(self.image).ellipse((x - r, y - r, x + r, y + r), fill=self.color)

    def start_stroke(self, x: float, y: float) -> None:
        self.is_drawing = True
        self._last = (x, y)
        self._dot(x, y)

    def move_to(self, x: float, y: float) -> None:
        if not self.is_drawing or self._last is None:
            return
        draw = ImageDraw.Draw(self.image)
        draw.line([self._last, (x, y)], fill=self.color, width=self._line_width, joint="curve")
        # round cap
        self._dot(x, y)
        self._last = (x, y)

    def end_stroke(self) -> None:
        if not self.is_drawing:
            return
        self.is_drawing = False
        self._last = None
        self.save_to_history()

    def pointer_down(self, event: PointerEvent, rect: Rect) -> None:
        self.start_stroke(*canvas_coordinates(event, rect))

    def pointer_move(self, event: PointerEvent, rect: Rect) -> None:
        self.move_to(*canvas_coordinates(event, rect))

    def pointer_up(self) -> None:
        self.end_stroke()

    def replay(self, stroke: Stroke) -> None:
        """Draw a recorded stroke as one history entry."""
        if not stroke.points:
            return
        tool, width = self._tool, self._line_width
        self.tool = stroke.tool
        self.line_width = stroke.width
        try:
            self.start_stroke(*stroke.points[0])
            for point in stroke.points[1:]:
                self.move_to(*point)
            self.end_stroke()
        finally:
            self._tool, self._line_width = tool, width

    def clear(self) -> None:
        ImageDraw.Draw(self.image).rectangle((0, 0, *self.image.size), fill=WHITE)
        self.save_to_history()

    def resize(self, width: int, height: int) -> None:
        """Resize the drawing surface, keeping existing content at the top-left."""
        if width <= 0 or height <= 0:
            return
        resized = Image.new("RGB", (width, height), WHITE)
        resized.paste(self.image, (0, 0))
        self.image = resized

    # --- history ---

    def save_to_history(self) -> None:
        self.history = self.history[: self.step + 1]
        self.history.append(self.image.copy())
        if len(self.history) > MAX_HISTORY:
            self.history.pop(0)
        self.step = len(self.history) - 1

    def _restore(self, snapshot: Image.Image) -> None:
        restored = Image.new("RGB", self.image.size, WHITE)
        restored.paste(snapshot, (0, 0))
        self.image = restored

    @property
    def can_undo(self) -> bool:
        return self.step > 0

    @property
    def can_redo(self) -> bool:
        return self.step < len(self.history) - 1

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self.step -= 1
        self._restore(self.history[self.step])
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self.step += 1
        self._restore(self.history[self.step])
        return True

    def handle_key(self, key: str, ctrl: bool = False, meta: bool = False, shift: bool = False) -> str | None:
        """Apply an undo/redo shortcut. Returns the action taken, if any."""
        if not (ctrl or meta):
            return None
        key = key.lower()
        if key == "z":
            if shift:
                self.redo()
                return "redo"
            self.undo()
            return "undo"
        if key == "y":
            self.redo()
            return "redo"
        return None

    # --- export ---

    def snapshot(self) -> str:
        """Current drawing as a PNG data URL."""
        return image_to_data_url(self.image, "PNG")


def strokes_from_canvas_json(json_data: dict[str, Any] | None) -> list[Stroke]:
    """Convert freedraw paths exported by the browser canvas widget into strokes.

    Paths are fabric.js command lists (``["M", x, y]``, ``["Q", cx, cy, x, y]``,
    ``["L", x, y]``); the end point of every command becomes a stroke vertex.
    White strokes are treated as eraser strokes.
    """
    strokes: list[Stroke] = []
    for obj in (json_data or {}).get("objects") or []:
        if obj.get("type") != "path":
            continue
        points = []
        for command in obj.get("path") or []:
            if len(command) >= 3:
                points.append((float(command[-2]), float(command[-1])))
        if not points:
            continue
        color = str(obj.get("stroke") or "#000000").lower()
        tool = "eraser" if color in ("#fff", "#ffffff", "white", "rgb(255, 255, 255)") else "pen"
        strokes.append(Stroke(points=points, tool=tool, width=int(obj.get("strokeWidth") or DEFAULT_LINE_WIDTH)))
    logger.debug("Parsed %d strokes from canvas JSON", len(strokes))
    return strokes

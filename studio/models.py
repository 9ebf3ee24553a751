"""Shared data types for the studio tools and the admin module."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class AppView(str, Enum):
    DASHBOARD = "Dashboard"
    IMAGE_GEN = "Image"
    VIDEO_STUDIO = "Video"
    TEXT_ENGINE = "Text"
    THUMBNAIL_ENGINE = "Thumbnail"
    SKETCH_STUDIO = "Sketch"
    CHAT_BOT = "Chat"
    INVENTORY = "Inventory"
    SETTINGS = "Settings"


class ContentType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    THUMBNAIL = "thumbnail"
    TEXT = "text"
    SKETCH = "sketch"


CONTENT_TABLES: dict[ContentType, str] = {
    ContentType.IMAGE: "generated_images",
    ContentType.VIDEO: "generated_videos",
    ContentType.THUMBNAIL: "generated_thumbnails",
    ContentType.TEXT: "generated_texts",
    ContentType.SKETCH: "generated_sketches",
}

CHAT_TABLE = "chat_sessions"
PROFILES_TABLE = "profiles"

ASPECT_RATIOS = ["1:1", "16:9", "9:16"]


class ContextOption(str, Enum):
    HUMAN = "Human Character"
    OBJECT = "Object / Prop"
    LANDSCAPE = "Landscape / Environment"
    ARCHITECTURE = "Architecture / Building"
    CREATURE = "Fantasy Creature"
    VEHICLE = "Vehicle / Machinery"
    ABSTRACT = "Abstract Concept"


class StyleOption(str, Enum):
    CINEMATIC = "Cinematic Realistic"
    PHOTOREALISTIC = "Photorealistic"
    CYBERPUNK = "Cyberpunk / Neon"
    STEAMPUNK = "Steampunk"
    POPART = "Pop Art"
    WATERCOLOR = "Watercolor Painting"
    OIL_PAINTING = "Oil Painting"
    ANIME = "Anime / Manga"
    PIXEL_ART = "Pixel Art"
    SKETCH = "Detailed Pencil Sketch"
    FANTASY = "High Fantasy"
    SCIFI = "Sci-Fi Concept Art"


@dataclass
class OperationResult:
    """Success/error shape returned by the history wrappers."""

    success: bool
    data: Any = None
    error: str | None = None


@dataclass
class GenerationItem:
    """One card in the dashboard feed."""

    id: str
    type: str
    url: str
    created_at: str
    title: str | None = None
    meta: str | None = None


@dataclass
class Persona:
    id: str
    name: str
    icon: str
    desc: str
    instruction: str


@dataclass
class ChatMessage:
    role: str  # "user" | "model"
    text: str
    id: str = field(default_factory=lambda: str(int(time.time() * 1000)))


@dataclass
class DashboardConfig:
    show_links: bool = True
    # None means all categories
    link_categories: list[str] | None = None
    show_calendar: bool = True
    show_loans: bool = True
    show_inventory_stats: bool = True
    pinned_login_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_stored(cls, stored: dict[str, Any] | None) -> DashboardConfig:
        """Merge a stored config blob over the defaults, ignoring unknown keys."""
        config = cls()
        names = {f.name for f in fields(cls)}
        for key, value in (stored or {}).items():
            if key in names:
                setattr(config, key, value)
        return config

    def to_dict(self) -> dict[str, Any]:
        return {
            "show_links": self.show_links,
            "link_categories": self.link_categories,
            "show_calendar": self.show_calendar,
            "show_loans": self.show_loans,
            "show_inventory_stats": self.show_inventory_stats,
            "pinned_login_ids": list(self.pinned_login_ids),
        }

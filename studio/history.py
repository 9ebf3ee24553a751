"""Persistence of generated content and chat sessions for the signed-in user."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from studio.auth import AuthSession
from studio.models import (
    CHAT_TABLE,
    CONTENT_TABLES,
    ContentType,
    GenerationItem,
    OperationResult,
)
from studio.platform import PlatformError

logger = logging.getLogger(__name__)

_MONTHS_DE = ["Jan.", "Feb.", "März", "Apr.", "Mai", "Juni", "Juli", "Aug.", "Sept.", "Okt.", "Nov.", "Dez."]


def parse_timestamp(iso: str) -> datetime:
    parsed = datetime.fromisoformat(iso.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(iso: str, now: datetime | None = None) -> str:
    """Render a creation time relative to now ("5m ago", "3h ago", ...)."""
    created = parse_timestamp(iso)
    now = now or datetime.now(timezone.utc)
    diff_mins = int((now - created).total_seconds() // 60)
    diff_hours = diff_mins // 60
    diff_days = diff_hours // 24

    if diff_mins < 1:
        return "Just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    if diff_days < 7:
        return f"{diff_days}d ago"
    return f"{created.day:02d}. {_MONTHS_DE[created.month - 1]}"


class ContentHistory:
    """Save/load/delete wrappers over the generated-content tables.

    Every call returns an ``OperationResult``; the last error message is also
    kept on ``self.error`` for display.
    """

    def __init__(self, auth: AuthSession) -> None:
        self.auth = auth
        self.client = auth.client
        self.error: str | None = None

    def _fail(self, action: str, exc: Exception, data: Any = None) -> OperationResult:
        message = str(exc)
        logger.error("%s failed: %s", action, message)
        self.error = message
        return OperationResult(success=False, data=data, error=message)

    def _insert(self, table: str, row: dict[str, Any]) -> OperationResult:
        self.error = None
        try:
            user = self.auth.require_user()
            saved = self.client.table(table).insert({"user_id": user["id"], **row}).execute()
        except (PlatformError, httpx.HTTPError) as e:
            return self._fail(f"Insert into {table}", e)
        return OperationResult(success=True, data=saved)

    # --- saves ---

    def save_image(
        self,
        prompt: str,
        image_url: str,
        style: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> OperationResult:
        return self._insert(
            CONTENT_TABLES[ContentType.IMAGE],
            {"prompt": prompt, "style": style or None, "image_url": image_url, "config": config or {}},
        )

    def save_video(
        self,
        prompt: str,
        video_url: str,
        model: str | None = None,
        thumbnail_url: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> OperationResult:
        return self._insert(
            CONTENT_TABLES[ContentType.VIDEO],
            {
                "prompt": prompt,
                "model": model or None,
                "video_url": video_url,
                "thumbnail_url": thumbnail_url or None,
                "config": config or {},
            },
        )

    def save_thumbnail(
        self,
        prompt: str,
        image_url: str,
        platform: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> OperationResult:
        return self._insert(
            CONTENT_TABLES[ContentType.THUMBNAIL],
            {"prompt": prompt, "platform": platform or None, "image_url": image_url, "config": config or {}},
        )

    def save_text(
        self,
        content: str,
        topic: str | None = None,
        platform: str | None = None,
        audience: str | None = None,
        tone: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> OperationResult:
        return self._insert(
            CONTENT_TABLES[ContentType.TEXT],
            {
                "content": content,
                "topic": topic or None,
                "platform": platform or None,
                "audience": audience or None,
                "tone": tone or None,
                "config": config or {},
            },
        )

    def save_chat(self, title: str, bot_id: str, messages: list[dict[str, str]]) -> OperationResult:
        return self._insert(CHAT_TABLE, {"title": title, "bot_id": bot_id, "messages": messages})

    def save_sketch(
        self,
        sketch_data: str,
        generated_image_url: str,
        context: str,
        style: str,
        edit_history: list[Any] | None = None,
    ) -> OperationResult:
        return self._insert(
            CONTENT_TABLES[ContentType.SKETCH],
            {
                "sketch_data": sketch_data,
                "generated_image_url": generated_image_url,
                "context": context,
                "style": style,
                "edit_history": edit_history or [],
            },
        )

    # --- loads ---

    def _load(self, table: str, limit: int) -> OperationResult:
        self.error = None
        try:
            user = self.auth.require_user()
            rows = (
                self.client.table(table)
                .select("*")
                .eq("user_id", user["id"])
                .order("created_at", ascending=False)
                .limit(limit)
                .execute()
            )
        except (PlatformError, httpx.HTTPError) as e:
            return self._fail(f"Load from {table}", e, data=[])
        return OperationResult(success=True, data=rows or [])

    def load_history(self, content_type: ContentType | str, limit: int = 50) -> OperationResult:
        return self._load(CONTENT_TABLES[ContentType(content_type)], limit)

    def load_chat_sessions(self, limit: int = 50) -> OperationResult:
        return self._load(CHAT_TABLE, limit)

    def load_sketch_history(self, limit: int = 20) -> list[dict]:
        result = self.load_history(ContentType.SKETCH, limit)
        return result.data if result.success else []

    def delete_content(self, content_id: str, content_type: ContentType | str) -> OperationResult:
        self.error = None
        table = CONTENT_TABLES[ContentType(content_type)]
        try:
            self.client.table(table).delete().eq("id", content_id).execute()
        except (PlatformError, httpx.HTTPError) as e:
            return self._fail(f"Delete from {table}", e)
        return OperationResult(success=True)

    # --- dashboard ---

    def load_dashboard_feed(self, limit: int = 20) -> list[GenerationItem]:
        """Recent images, videos, thumbnails and sketches, newest first."""
        items: list[GenerationItem] = []

        images = self.load_history(ContentType.IMAGE, limit)
        for row in images.data if images.success else []:
            items.append(GenerationItem(
                id=row["id"], type="IMAGE", url=row["image_url"],
                created_at=row["created_at"], title=row.get("prompt") or None,
            ))

        videos = self.load_history(ContentType.VIDEO, limit)
        for row in videos.data if videos.success else []:
            items.append(GenerationItem(
                id=row["id"], type="VIDEO", url=row.get("thumbnail_url") or row["video_url"],
                created_at=row["created_at"], title=row.get("prompt") or None,
            ))

        thumbnails = self.load_history(ContentType.THUMBNAIL, limit)
        for row in thumbnails.data if thumbnails.success else []:
            items.append(GenerationItem(
                id=row["id"], type="THUMBNAIL", url=row["image_url"],
                created_at=row["created_at"], title=row.get("prompt") or None,
            ))

        sketches = self.load_history(ContentType.SKETCH, limit)
        for row in sketches.data if sketches.success else []:
            # rows from failed generations have no image
            if not row.get("generated_image_url"):
                continue
            items.append(GenerationItem(
                id=row["id"], type="SKETCH", url=row["generated_image_url"],
                created_at=row["created_at"], title=f"{row.get('context')} - {row.get('style')}",
            ))

        items.sort(key=lambda item: parse_timestamp(item.created_at), reverse=True)
        return items

"""Platform-specific copywriting with optional Google Search grounding."""

from __future__ import annotations

import logging
from datetime import date

from prompts.templates import (
    CONTINUATION_PROMPT,
    DEFAULT_AUDIENCE,
    DEFAULT_CONTINUATION_TOPIC,
    DEFAULT_LANGUAGE,
    DEFAULT_TONE,
    DEFAULT_TOPIC,
    PLATFORM_INSTRUCTIONS,
    TEXT_PROMPT,
    TEXT_SYSTEM_INSTRUCTION,
    TRENDS_BLOCK,
)
from studio.generation import SEARCH_MODEL, TEXT_MODEL, ProxyClient, extract_text
from studio.history import ContentHistory

logger = logging.getLogger(__name__)

PLATFORMS = list(PLATFORM_INSTRUCTIONS)

_MONTHS_DE = [
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
]


def german_long_date(day: date) -> str:
    return f"{day.day}. {_MONTHS_DE[day.month - 1]} {day.year}"


def build_text_prompt(
    platform: str,
    topic: str = "",
    audience: str = "",
    tone: str = DEFAULT_TONE,
    language: str = DEFAULT_LANGUAGE,
    use_trends: bool = False,
    today: date | None = None,
) -> str:
    if platform not in PLATFORM_INSTRUCTIONS:
        raise ValueError(f"Unknown platform: {platform}")
    trends = ""
    if use_trends:
        trends = TRENDS_BLOCK.substitute(today=german_long_date(today or date.today()))
    return TEXT_PROMPT.substitute(
        instruction=PLATFORM_INSTRUCTIONS[platform],
        topic=topic or DEFAULT_TOPIC,
        audience=audience or DEFAULT_AUDIENCE,
        tone=tone or DEFAULT_TONE,
        trends=trends,
        platform=platform,
        language=language or DEFAULT_LANGUAGE,
    )


def build_continuation_prompt(
    platform: str,
    content: str,
    topic: str = "",
    language: str = DEFAULT_LANGUAGE,
) -> str:
    return CONTINUATION_PROMPT.substitute(
        platform=platform,
        topic=topic or DEFAULT_CONTINUATION_TOPIC,
        content=content,
        language=language or DEFAULT_LANGUAGE,
    )


class TextEngine:
    def __init__(self, proxy: ProxyClient, history: ContentHistory | None = None) -> None:
        self.proxy = proxy
        self.history = history

    def _complete(self, prompt: str, use_search: bool = False) -> str:
        response = self.proxy.generate_content(
            model=SEARCH_MODEL if use_search else TEXT_MODEL,
            contents=[{"role": "user", "parts": [{"text": prompt}]}],
            system_instruction=TEXT_SYSTEM_INSTRUCTION,
            tools=[{"googleSearch": {}}] if use_search else None,
        )
        return extract_text(response)

    def _save(self, content: str, platform: str, topic: str, audience: str, tone: str) -> None:
        if self.history is None:
            return
        self.history.save_text(
            content=content,
            topic=topic or "Untitled Generation",
            platform=platform,
            audience=audience or None,
            tone=tone,
        )

    def generate(
        self,
        platform: str,
        topic: str = "",
        audience: str = "",
        tone: str = DEFAULT_TONE,
        language: str = DEFAULT_LANGUAGE,
        use_trends: bool = False,
    ) -> str:
        prompt = build_text_prompt(platform, topic, audience, tone, language, use_trends)
        text = self._complete(prompt, use_search=use_trends)
        if text:
            logger.info("Generated %s text (%d chars)", platform, len(text))
            self._save(text, platform, topic, audience, tone)
        return text

    def continue_text(
        self,
        platform: str,
        content: str,
        topic: str = "",
        language: str = DEFAULT_LANGUAGE,
    ) -> str:
        """Append a continuation to ``content``. Not saved to history."""
        if not content.strip():
            raise ValueError("There is no text to continue.")
        generated = self._complete(build_continuation_prompt(platform, content, topic, language))
        if not generated:
            return content
        return f"{content}\n\n{generated}"

    def generate_all(
        self,
        topic: str = "",
        audience: str = "",
        tone: str = DEFAULT_TONE,
        language: str = DEFAULT_LANGUAGE,
        use_trends: bool = False,
    ) -> dict[str, str]:
        """One text per platform, each saved to history."""
        results: dict[str, str] = {}
        for platform in PLATFORMS:
            text = self.generate(platform, topic, audience, tone, language, use_trends)
            if text:
                results[platform] = text
        return results

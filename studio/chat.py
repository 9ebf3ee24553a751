"""Persona chat bot with stateless history and onboarding retrieval."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from prompts.templates import (
    CHAT_ERROR,
    CHAT_GREETING,
    CHAT_SWITCH,
    ONBOARDING_RAG_PROMPT,
    PERSONAS,
    PERSONAS_BY_ID,
)
from studio.generation import EMBEDDING_MODEL, TEXT_MODEL, GenerationError, ProxyClient, extract_text
from studio.history import ContentHistory
from studio.models import ChatMessage, Persona
from studio.platform import PlatformClient, PlatformError

logger = logging.getLogger(__name__)

ONBOARDING_PERSONA = "onboarding"
MATCH_FUNCTION = "match_onboarding_docs"
MATCH_COUNT = 5
TITLE_LENGTH = 50


def greeting(persona: Persona) -> ChatMessage:
    return ChatMessage(role="model", text=CHAT_GREETING.substitute(name=persona.name))


def switch_notice(persona: Persona) -> ChatMessage:
    return ChatMessage(role="model", text=CHAT_SWITCH.substitute(name=persona.name, desc=persona.desc))


def upstream_history(messages: list[ChatMessage]) -> list[dict]:
    """Conversation turns sent to the model; local greetings and notices are dropped."""
    contents = []
    for message in messages:
        if message.role == "model" and (
            not message.text or message.text.startswith("System:") or message.text.startswith("Hello!")
        ):
            continue
        contents.append({"role": message.role, "parts": [{"text": message.text}]})
    return contents


def format_context(rows: list[dict]) -> str:
    return "\n\n".join(f"### {row['heading']}\n{row['content']}" for row in rows)


class ChatBot:
    """One chat window: the active persona, its messages and the saved session id."""

    def __init__(
        self,
        proxy: ProxyClient,
        platform: PlatformClient | None = None,
        history: ContentHistory | None = None,
    ) -> None:
        self.proxy = proxy
        self.platform = platform
        self.history = history
        self.persona: Persona = PERSONAS[0]
        self.messages: list[ChatMessage] = [greeting(self.persona)]
        self.session_id: str | None = None

    def new_chat(self) -> None:
        self.messages = [greeting(self.persona)]
        self.session_id = None

    def switch_persona(self, persona_id: str) -> None:
        persona = PERSONAS_BY_ID.get(persona_id)
        if persona is None:
            raise ValueError(f"Unknown persona: {persona_id}")
        if persona.id == self.persona.id:
            return
        self.persona = persona
        self.messages = [switch_notice(persona)]
        self.session_id = None

    def retrieve_onboarding_context(self, question: str) -> str:
        """Top matching knowledge-base chunks, or ``""`` when retrieval fails."""
        if self.platform is None:
            return ""
        try:
            embedding = self.proxy.embed_content(EMBEDDING_MODEL, question)
            rows = self.platform.rpc(
                MATCH_FUNCTION, {"query_embedding": embedding, "match_count": MATCH_COUNT}
            )
        except (GenerationError, PlatformError, httpx.HTTPError) as e:
            logger.warning("Onboarding retrieval failed: %s", e)
            return ""
        if not rows:
            return ""
        return format_context(rows)

    def send(self, text: str) -> ChatMessage | None:
        """Send a user message and append the reply. Returns the reply message."""
        if not text.strip():
            return None

        previous = list(self.messages)
        self.messages.append(ChatMessage(role="user", text=text))

        message = text
        if self.persona.id == ONBOARDING_PERSONA:
            context = self.retrieve_onboarding_context(text)
            if context:
                message = ONBOARDING_RAG_PROMPT.substitute(context=context, question=text)

        contents = upstream_history(previous)
        contents.append({"role": "user", "parts": [{"text": message}]})

        try:
            response = self.proxy.generate_content(
                model=TEXT_MODEL,
                contents=contents,
                config={"systemInstruction": self.persona.instruction},
            )
        except (GenerationError, PlatformError, httpx.HTTPError) as e:
            logger.error("Chat error: %s", e)
            reply = ChatMessage(role="model", text=CHAT_ERROR)
            self.messages.append(reply)
            return reply

        reply = ChatMessage(role="model", text=extract_text(response))
        self.messages.append(reply)
        self.save_session()
        return reply

    def session_title(self) -> str:
        for message in self.messages:
            if message.role == "user":
                return message.text[:TITLE_LENGTH]
        return "Untitled Chat"

    def save_session(self) -> bool:
        if self.history is None or len(self.messages) < 2:
            return False
        result = self.history.save_chat(
            title=self.session_title(),
            bot_id=self.persona.id,
            messages=[
                {"role": "user" if m.role == "user" else "assistant", "content": m.text}
                for m in self.messages
            ],
        )
        if result.success and result.data:
            self.session_id = result.data[0].get("id") if isinstance(result.data, list) else None
        return result.success

    def load_session(self, session: dict[str, Any]) -> None:
        self.messages = [
            ChatMessage(
                role="user" if m.get("role") == "user" else "model",
                text=m.get("content", ""),
                id=f"{session['id']}-{idx}",
            )
            for idx, m in enumerate(session.get("messages") or [])
        ]
        self.session_id = session["id"]
        persona = PERSONAS_BY_ID.get(session.get("bot_id"))
        if persona is not None:
            self.persona = persona

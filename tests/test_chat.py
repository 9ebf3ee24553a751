from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from prompts.templates import CHAT_ERROR, PERSONAS_BY_ID
from studio.chat import ChatBot, format_context, upstream_history
from studio.generation import GenerationError
from studio.models import ChatMessage, OperationResult
from studio.platform import PlatformError


def reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeProxy:
    def __init__(self, response=None, error=None, embedding=None):
        self.response = response
        self.error = error
        self.embedding = embedding or [0.5, 0.25]
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response

    def embed_content(self, model, text):
        self.calls.append({"embed": text, "model": model})
        return self.embedding


class FakePlatform:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.rpc_calls = []

    def rpc(self, function, params=None):
        self.rpc_calls.append((function, params))
        if self.error:
            raise self.error
        return self.rows


class FakeHistory:
    def __init__(self):
        self.chats = []

    def save_chat(self, title, bot_id, messages):
        self.chats.append({"title": title, "bot_id": bot_id, "messages": messages})
        return OperationResult(success=True, data=[{"id": "chat1"}])


def test_new_bot_greets_with_first_persona():
    bot = ChatBot(FakeProxy())
    assert bot.persona.id == "analysis"
    assert bot.messages[0].text.startswith("Hello! I'm your Medien-Analyst")


def test_switch_persona_resets_with_notice():
    bot = ChatBot(FakeProxy())
    bot.switch_persona("coding")
    assert bot.persona.name == "DevX Assistant"
    assert len(bot.messages) == 1
    assert bot.messages[0].text.startswith("System: Switched to DevX Assistant mode.")


def test_switch_to_unknown_persona_raises():
    with pytest.raises(ValueError):
        ChatBot(FakeProxy()).switch_persona("pirate")


def test_upstream_history_skips_greetings_and_notices():
    messages = [
        ChatMessage("model", "Hello! I'm your helper."),
        ChatMessage("model", "System: Switched to X mode."),
        ChatMessage("user", "Hi"),
        ChatMessage("model", "Hey there"),
        ChatMessage("model", ""),
    ]
    assert upstream_history(messages) == [
        {"role": "user", "parts": [{"text": "Hi"}]},
        {"role": "model", "parts": [{"text": "Hey there"}]},
    ]


def test_send_appends_reply_and_saves_session():
    proxy = FakeProxy(reply("Try a neon palette."))
    history = FakeHistory()
    bot = ChatBot(proxy, history=history)

    answer = bot.send("Give me a color idea for a poster about the ocean at night, please")

    assert answer.text == "Try a neon palette."
    assert [m.role for m in bot.messages] == ["model", "user", "model"]
    call = proxy.calls[0]
    assert call["config"] == {"systemInstruction": PERSONAS_BY_ID["analysis"].instruction}
    assert call["contents"] == [{"role": "user", "parts": [{"text": bot.messages[1].text}]}]

    saved = history.chats[0]
    assert saved["title"] == "Give me a color idea for a poster about the ocean "[:50]
    assert len(saved["title"]) == 50
    assert saved["bot_id"] == "analysis"
    assert [m["role"] for m in saved["messages"]] == ["assistant", "user", "assistant"]
    assert bot.session_id == "chat1"


def test_send_error_appends_friendly_message():
    history = FakeHistory()
    bot = ChatBot(FakeProxy(error=GenerationError("quota")), history=history)
    answer = bot.send("hello")
    assert answer.text == CHAT_ERROR
    assert bot.messages[-1].text == CHAT_ERROR
    assert history.chats == []


def test_blank_message_is_ignored():
    bot = ChatBot(FakeProxy(reply("x")))
    assert bot.send("   ") is None
    assert len(bot.messages) == 1


def test_onboarding_persona_wraps_question_with_context():
    proxy = FakeProxy(reply("Um 9 Uhr."))
    platform = FakePlatform(rows=[{"heading": "Arbeitszeiten", "content": "Wir starten um 9 Uhr."}])
    bot = ChatBot(proxy, platform=platform)
    bot.switch_persona("onboarding")

    bot.send("Wann fängt der Tag an?")

    assert platform.rpc_calls == [
        ("match_onboarding_docs", {"query_embedding": [0.5, 0.25], "match_count": 5}),
    ]
    sent = proxy.calls[-1]["contents"][-1]["parts"][0]["text"]
    assert "### Arbeitszeiten\nWir starten um 9 Uhr." in sent
    assert sent.endswith("Frage: Wann fängt der Tag an?")


def test_onboarding_retrieval_failure_sends_plain_question():
    proxy = FakeProxy(reply("ok"))
    bot = ChatBot(proxy, platform=FakePlatform(error=PlatformError("rpc missing")))
    bot.switch_persona("onboarding")
    bot.send("Wo ist die Küche?")
    assert proxy.calls[-1]["contents"][-1]["parts"][0]["text"] == "Wo ist die Küche?"


def test_format_context():
    rows = [{"heading": "A", "content": "one"}, {"heading": "B", "content": "two"}]
    assert format_context(rows) == "### A\none\n\n### B\ntwo"


def test_load_session_restores_messages_and_persona():
    bot = ChatBot(FakeProxy())
    bot.load_session({
        "id": "s1",
        "bot_id": "marketing",
        "messages": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
    })
    assert bot.session_id == "s1"
    assert bot.persona.id == "marketing"
    assert [(m.role, m.text) for m in bot.messages] == [("user", "hi"), ("model", "hello")]
    assert bot.session_title() == "hi"

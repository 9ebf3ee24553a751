from pathlib import Path
from datetime import date
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from prompts.templates import TEXT_SYSTEM_INSTRUCTION
from studio.generation import IMAGE_MODEL, SEARCH_MODEL, TEXT_MODEL, VIDEO_MODEL, GenerationError
from studio.image_gen import ImageGenerator
from studio.text_engine import PLATFORMS, TextEngine, build_text_prompt, german_long_date
from studio.thumbnail import MISSING_CONTENT, MISSING_TOPIC, ThumbnailEngine, ThumbnailSpec, build_thumbnail_parts
from studio.video import VideoStudio, with_api_key

IMAGE_RESPONSE = {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": "QUJD"}}]}}]}


def text_response(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeProxy:
    def __init__(self, response=None, operations=None):
        self.response = response or {}
        self.operations = list(operations or [])
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.response

    def generate_videos(self, **kwargs):
        self.calls.append(kwargs)
        return self.operations.pop(0)

    def get_videos_operation(self, operation):
        return self.operations.pop(0)


class FakeHistory:
    def __init__(self):
        self.saved = []

    def __getattr__(self, name):
        if not name.startswith("save_"):
            raise AttributeError(name)

        def save(**kwargs):
            self.saved.append((name, kwargs))
        return save


# --- image generation ---


def test_image_request_puts_reference_first():
    request = ImageGenerator(FakeProxy()).build_request(
        "make it blue", "EDIT", "16:9", "data:image/jpeg;base64,REF"
    )
    parts = request["contents"][0]["parts"]
    assert request["model"] == IMAGE_MODEL
    assert parts[0] == {"inlineData": {"mimeType": "image/jpeg", "data": "REF"}}
    assert parts[1] == {"text": "make it blue"}
    assert request["config"] == {"imageConfig": {"aspectRatio": "16:9"}}


@pytest.mark.parametrize("prompt, mode, ratio, reference, message", [
    ("", "TEXT", "1:1", None, "prompt"),
    ("cat", "TEXT", "4:3", None, "aspect ratio"),
    ("cat", "IMG2IMG", "1:1", None, "reference image"),
])
def test_image_request_validation(prompt, mode, ratio, reference, message):
    with pytest.raises(ValueError, match=message):
        ImageGenerator(FakeProxy()).build_request(prompt, mode, ratio, reference)


def test_image_generate_saves_to_history():
    history = FakeHistory()
    url = ImageGenerator(FakeProxy(IMAGE_RESPONSE), history).generate("a cat", "TEXT", "9:16")

    assert url == "data:image/png;base64,QUJD"
    assert history.saved == [("save_image", {
        "prompt": "a cat",
        "image_url": url,
        "style": "TEXT",
        "config": {"aspectRatio": "9:16", "mode": "TEXT"},
    })]


def test_image_generate_without_image_raises():
    history = FakeHistory()
    with pytest.raises(GenerationError, match="No image generated"):
        ImageGenerator(FakeProxy(text_response("sorry")), history).generate("a cat")
    assert history.saved == []


# --- video studio ---


def test_with_api_key():
    assert with_api_key("https://x/v.mp4", "k") == "https://x/v.mp4?key=k"
    assert with_api_key("https://x/v?alt=media", "k") == "https://x/v?alt=media&key=k"
    assert with_api_key("https://x/v.mp4", "") == "https://x/v.mp4"


def test_video_request_for_image_mode():
    request = VideoStudio(FakeProxy()).build_request(
        "waves", "IMAGE", "9:16", "Zoom", "data:image/jpeg;base64,SRC"
    )
    assert request["model"] == VIDEO_MODEL
    assert request["prompt"] == "waves (Camera Motion: Zoom)"
    assert request["image"] == {"imageBytes": "SRC", "mimeType": "image/png"}
    assert request["config"] == {"numberOfVideos": 1, "resolution": "720p", "aspectRatio": "9:16"}


def test_video_text_mode_uses_full_hd():
    request = VideoStudio(FakeProxy()).build_request("waves")
    assert request["image"] is None
    assert request["config"]["resolution"] == "1080p"


def test_video_image_mode_requires_source():
    with pytest.raises(ValueError, match="source image"):
        VideoStudio(FakeProxy()).build_request("waves", "IMAGE")


def test_video_generate_polls_and_saves():
    proxy = FakeProxy(operations=[
        {"name": "op1"},
        {"name": "op1", "done": False},
        {"name": "op1", "done": True, "response": {"generatedVideos": [{"video": {"uri": "https://x/v.mp4"}}]}},
    ])
    history = FakeHistory()
    sleeps = []
    studio = VideoStudio(proxy, history, api_key="k", poll_interval=1.5, sleep=sleeps.append)

    url = studio.generate("waves", duration="8s", camera_motion="Orbit")

    assert url == "https://x/v.mp4?key=k"
    assert sleeps == [1.5, 1.5]
    name, saved = history.saved[0]
    assert name == "save_video"
    assert saved["video_url"] == url
    assert saved["config"] == {"aspectRatio": "16:9", "duration": "8s", "cameraMotion": "Orbit", "mode": "TEXT"}


def test_video_generate_rejects_unknown_duration():
    with pytest.raises(ValueError, match="duration"):
        VideoStudio(FakeProxy()).generate("waves", duration="30s")


def test_video_without_uri_raises():
    proxy = FakeProxy(operations=[{"name": "op1", "done": True, "response": {}}])
    with pytest.raises(GenerationError, match="without a video"):
        VideoStudio(proxy, sleep=lambda _: None).generate("waves")


# --- text engine ---


def test_german_long_date():
    assert german_long_date(date(2026, 3, 1)) == "1. März 2026"


def test_text_prompt_defaults_and_trends():
    prompt = build_text_prompt("LinkedIn", use_trends=True, today=date(2026, 10, 19))
    assert 'Topic: "The impact of Web3 on digital art"' in prompt
    assert "Today is 19. Oktober 2026" in prompt
    assert "Output ONLY the LinkedIn content" in prompt
    assert prompt.endswith("Write the entire output in Deutsch.")


def test_text_prompt_unknown_platform():
    with pytest.raises(ValueError):
        build_text_prompt("Fax")


def test_text_generate_with_search_uses_grounded_model():
    proxy = FakeProxy(text_response("Post body"))
    history = FakeHistory()
    text = TextEngine(proxy, history).generate("Blog Post", topic="", tone="Casual", use_trends=True)

    assert text == "Post body"
    call = proxy.calls[0]
    assert call["model"] == SEARCH_MODEL
    assert call["tools"] == [{"googleSearch": {}}]
    assert call["system_instruction"] == TEXT_SYSTEM_INSTRUCTION
    assert history.saved[0][1]["topic"] == "Untitled Generation"


def test_text_generate_without_search():
    proxy = FakeProxy(text_response("x"))
    TextEngine(proxy).generate("Instagram")
    assert proxy.calls[0]["model"] == TEXT_MODEL
    assert proxy.calls[0]["tools"] is None


def test_continue_text_appends_and_is_not_saved():
    history = FakeHistory()
    engine = TextEngine(FakeProxy(text_response("More.")), history)
    assert engine.continue_text("Blog Post", "Start.") == "Start.\n\nMore."
    assert history.saved == []


def test_continue_text_requires_content():
    with pytest.raises(ValueError):
        TextEngine(FakeProxy()).continue_text("Blog Post", "   ")


def test_generate_all_covers_every_platform():
    history = FakeHistory()
    results = TextEngine(FakeProxy(text_response("copy")), history).generate_all(topic="AI")
    assert list(results) == PLATFORMS
    assert len(history.saved) == len(PLATFORMS)


# --- thumbnails ---


def test_thumbnail_ideas_require_topic():
    with pytest.raises(ValueError) as exc:
        ThumbnailEngine(FakeProxy()).suggest_text("  ")
    assert str(exc.value) == MISSING_TOPIC


def test_thumbnail_idea_is_stripped():
    proxy = FakeProxy(text_response("  BIG NEWS \n"))
    assert ThumbnailEngine(proxy).suggest_text("AI video") == "BIG NEWS"
    assert "AI video" in proxy.calls[0]["contents"]


def test_thumbnail_parts_order():
    spec = ThumbnailSpec(
        topic="AI",
        background_prompt="city",
        background_image="data:image/png;base64,BG",
        element_image="data:image/png;base64,EL",
        text_overlay="WOW",
    )
    parts = build_thumbnail_parts(spec)
    assert parts[0]["inlineData"]["data"] == "BG"
    assert parts[1]["inlineData"]["data"] == "EL"
    text = parts[2]["text"]
    assert "Background Context: city." in text
    assert 'MUST include the text "WOW"' in text
    assert "Bold & Modern font style" in text


def test_thumbnail_requires_content():
    with pytest.raises(ValueError) as exc:
        ThumbnailEngine(FakeProxy()).generate(ThumbnailSpec(topic="AI"))
    assert str(exc.value) == MISSING_CONTENT


def test_thumbnail_generate_saves():
    history = FakeHistory()
    url = ThumbnailEngine(FakeProxy(IMAGE_RESPONSE), history).generate(ThumbnailSpec(element_prompt="robot"))
    assert url == "data:image/png;base64,QUJD"
    name, saved = history.saved[0]
    assert name == "save_thumbnail"
    assert saved["prompt"] == "Untitled Thumbnail"
    assert saved["platform"] == "YouTube"
    assert saved["config"]["mainElement"] == "robot"

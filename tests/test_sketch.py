from pathlib import Path
from types import SimpleNamespace
import base64
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from studio.generation import IMAGE_MODEL, GenerationError
from studio.sketch import SketchService, clean_base64, extract_image_from_response


def sdk_response(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def image_part(data):
    return SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type="image/png"), text=None)


def text_part(text):
    return SimpleNamespace(inline_data=None, text=text)


class FakeModels:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.response


def service_with(response):
    service = SketchService(api_key="key")
    models = FakeModels(response)
    service._client = SimpleNamespace(models=models)
    return service, models


def test_clean_base64_strips_prefix():
    assert clean_base64("data:image/jpeg;base64,QUJD") == "QUJD"
    assert clean_base64("QUJD") == "QUJD"


def test_extract_image_encodes_bytes():
    response = sdk_response(text_part("here"), image_part(b"ABC"))
    assert extract_image_from_response(response) == "data:image/png;base64,QUJD"


def test_extract_image_passes_through_base64_strings():
    assert extract_image_from_response(sdk_response(image_part("QUJD"))) == "data:image/png;base64,QUJD"


def test_extract_image_reports_text_only_response():
    with pytest.raises(GenerationError, match="Model returned text instead of image: I cannot draw that"):
        extract_image_from_response(sdk_response(text_part("I cannot draw that")))


def test_extract_image_without_parts():
    with pytest.raises(GenerationError, match="No content parts"):
        extract_image_from_response(SimpleNamespace(candidates=[]))


def test_extract_image_with_empty_parts():
    with pytest.raises(GenerationError, match="No image generated"):
        extract_image_from_response(sdk_response(SimpleNamespace(inline_data=None, text="")))


def test_generate_from_sketch_sends_prompt_and_image():
    service, models = service_with(sdk_response(image_part(b"OUT")))
    sketch = "data:image/png;base64," + base64.b64encode(b"SKETCH").decode()

    result = service.generate_image_from_sketch(
        sketch, "Fantasy Creature", "Pop Art", aspect_ratio="9:16", additional_prompt="glowing eyes"
    )

    assert result == "data:image/png;base64," + base64.b64encode(b"OUT").decode()
    call = models.calls[0]
    assert call["model"] == IMAGE_MODEL
    assert call["config"] == {"image_config": {"aspect_ratio": "9:16"}}
    text, image = call["contents"][0]["parts"]
    assert "Subject Context: Fantasy Creature" in text["text"]
    assert "Artistic Style: Pop Art" in text["text"]
    assert "- glowing eyes" in text["text"]
    assert image == {"inline_data": {"mime_type": "image/png", "data": b"SKETCH"}}


def test_generate_from_sketch_rejects_unknown_style():
    service, _ = service_with(sdk_response(image_part(b"OUT")))
    with pytest.raises(ValueError):
        service.generate_image_from_sketch("QUJD", "Fantasy Creature", "Crayon")


def test_edit_generated_image():
    service, models = service_with(sdk_response(image_part(b"EDITED")))
    result = service.edit_generated_image("data:image/png;base64,QUJD", "make the sky stormy")

    assert result.endswith(base64.b64encode(b"EDITED").decode())
    prompt = models.calls[0]["contents"][0]["parts"][0]["text"]
    assert "Instruction: make the sky stormy" in prompt
    assert "config" not in models.calls[0]


def test_edit_requires_instruction():
    service, models = service_with(sdk_response())
    with pytest.raises(ValueError):
        service.edit_generated_image("QUJD", "  ")
    assert models.calls == []

import json

import pytest

from clients.gemini_client import ModelResponseError
from models.schemas import SuggestionRequest
from services.style_transfer import MissingInputError
from services.suggestions import SuggestionService

from fakes import RecordingGemini, make_client, text_response


def _service(body):
    handler = RecordingGemini(body)
    return SuggestionService(make_client(handler), model="gemini-2.0-flash"), handler


def test_returns_suggestions_and_sends_schema():
    suggestions = ["Impressionist painting", "Pencil sketch", "Cyberpunk illustration"]
    service, handler = _service(text_response(json.dumps({"styleImageSuggestions": suggestions})))

    result = service.suggest_sync(SuggestionRequest(content_description="A lighthouse at dusk"))

    assert result.style_image_suggestions == suggestions
    payload = handler.payloads[0]
    prompt = payload["contents"][0]["parts"][0]["text"]
    assert "suggest 3 different styles" in prompt
    assert prompt.rstrip().endswith("Content Description: A lighthouse at dusk")
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    assert payload["generationConfig"]["responseSchema"]["required"] == ["styleImageSuggestions"]


def test_count_is_not_enforced():
    five = ["Ukiyo-e", "Art deco", "Watercolor", "Pixel art", "Bauhaus poster"]
    service, _ = _service(text_response(json.dumps({"styleImageSuggestions": five})))
    assert service.suggest_sync(SuggestionRequest(content_description="A cat")).style_image_suggestions == five


@pytest.mark.parametrize(
    "text",
    [
        json.dumps({"suggestions": ["Watercolor"]}),
        json.dumps(["Watercolor"]),
        json.dumps({"styleImageSuggestions": "Watercolor"}),
        "Sure! Here are three styles: watercolor, ink, oil.",
    ],
)
def test_unexpected_shape_fails(text):
    service, _ = _service(text_response(text))
    with pytest.raises(ModelResponseError):
        service.suggest_sync(SuggestionRequest(content_description="A cat"))


def test_no_text_part_fails():
    service, _ = _service({"candidates": []})
    with pytest.raises(ModelResponseError):
        service.suggest_sync(SuggestionRequest(content_description="A cat"))


def test_blank_description_makes_no_call():
    service, handler = _service(text_response("{}"))
    with pytest.raises(MissingInputError):
        service.suggest_sync(SuggestionRequest(content_description="   "))
    assert handler.requests == []

import httpx
import pytest

from clients.gemini_client import ModelResponseError, TransportError, find_image, find_text, image_part, text_part

from fakes import RecordingGemini, image_response, make_client


def test_generate_content_posts_parts_and_config(gemini):
    client = make_client(gemini)

    parts = client.generate_content(
        "gemini-2.0-flash-exp",
        [text_part("hello")],
        generation_config={"responseModalities": ["TEXT", "IMAGE"]},
    )

    assert len(gemini.requests) == 1
    request = gemini.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://gemini.test/v1beta/models/gemini-2.0-flash-exp:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    assert gemini.payloads[0] == {
        "contents": [{"role": "user", "parts": [{"text": "hello"}]}],
        "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
    }
    assert parts[0] == {"text": "Here is your image."}
    assert "inlineData" in parts[1]


def test_generate_content_collects_parts_from_all_candidates():
    body = {
        "candidates": [
            {"content": {"parts": [{"text": "a"}]}},
            {"content": {"parts": [{"text": "b"}]}},
        ]
    }
    parts = make_client(RecordingGemini(body)).generate_content("m", [text_part("x")])
    assert parts == [{"text": "a"}, {"text": "b"}]


def test_blocked_prompt_returns_no_parts():
    body = {"promptFeedback": {"blockReason": "SAFETY"}}
    assert make_client(RecordingGemini(body)).generate_content("m", [text_part("x")]) == []


def test_provider_error_status_raises_transport_error():
    handler = RecordingGemini({"error": {"code": 400, "message": "API key not valid."}}, status_code=400)
    with pytest.raises(TransportError, match="API key not valid"):
        make_client(handler).generate_content("m", [text_part("x")])


def test_network_failure_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError, match="connection refused"):
        make_client(handler).generate_content("m", [text_part("x")])


def test_missing_api_key_fails_without_request(gemini):
    with pytest.raises(TransportError, match="GEMINI_API_KEY"):
        make_client(gemini, api_key="").generate_content("m", [text_part("x")])
    assert gemini.requests == []


def test_find_image_accepts_both_spellings():
    assert find_image([{"text": "no"}, image_part("image/jpeg", "QUJD")]) == "data:image/jpeg;base64,QUJD"
    snake = [{"inline_data": {"mime_type": "image/webp", "data": "QUJD"}}]
    assert find_image(snake) == "data:image/webp;base64,QUJD"
    assert find_image([{"text": "only text"}]) is None


def test_find_text_joins_text_parts():
    parts = image_response()["candidates"][0]["content"]["parts"] + [{"text": " More."}]
    assert find_text(parts) == "Here is your image. More."
    assert find_text([image_part("image/png", "QUJD")]) is None


@pytest.mark.parametrize(
    "body",
    [
        ["unexpected"],
        "just a string",
        {"candidates": {"content": {}}},
        {"candidates": ["not a candidate"]},
        {"candidates": [{"content": "text"}]},
        {"candidates": [{"content": {"parts": "text"}}]},
        {"candidates": [{"content": {"parts": ["text"]}}]},
    ],
)
def test_malformed_success_body_raises_model_response_error(body):
    with pytest.raises(ModelResponseError):
        make_client(RecordingGemini(body)).generate_content("m", [text_part("x")])


@pytest.mark.parametrize("body", [[{"error": "x"}], "overloaded", {"error": "plain string"}])
def test_provider_error_with_unusual_body_raises_transport_error(body):
    handler = RecordingGemini(body, status_code=500)
    with pytest.raises(TransportError, match="Gemini API error 500"):
        make_client(handler).generate_content("m", [text_part("x")])


def test_find_image_skips_non_dict_inline_data():
    assert find_image([{"inlineData": "QUJD"}, image_part("image/png", "QUJD")]) == "data:image/png;base64,QUJD"

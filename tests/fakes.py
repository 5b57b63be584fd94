import base64
import json

import httpx

from clients.gemini_client import GeminiClient
from models.schemas import StyleTransferResponse

CONTENT_URI = "data:image/png;base64,AAA"
STYLE_URI = "data:image/png;base64,BBB"
RESULT_BYTES = b"\x89PNG\r\n\x1a\nstylized"
RESULT_B64 = base64.b64encode(RESULT_BYTES).decode("ascii")
RESULT_URI = f"data:image/png;base64,{RESULT_B64}"


def image_response(data_b64=RESULT_B64, mime="image/png", text="Here is your image."):
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {"text": text},
                        {"inlineData": {"mimeType": mime, "data": data_b64}},
                    ],
                }
            }
        ]
    }


def text_response(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


class RecordingGemini:
    """MockTransport handler that records requests and answers with a fixed body."""

    def __init__(self, body=None, status_code=200):
        self.body = body if body is not None else image_response()
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


def make_client(handler, api_key="test-key") -> GeminiClient:
    return GeminiClient(api_key=api_key, base_url="https://gemini.test", transport=httpx.MockTransport(handler))


class FakeStyleTransferService:
    """Stands in for StyleTransferService in form tests."""

    def __init__(self, result=RESULT_URI, error=None, on_call=None):
        self.result = result
        self.error = error
        self.on_call = on_call
        self.calls = []

    async def transfer_style(self, request):
        self.calls.append(request)
        if self.on_call:
            self.on_call(request)
        if self.error:
            raise self.error
        return StyleTransferResponse(stylized_image=self.result)

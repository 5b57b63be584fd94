"""
Gemini generateContent API client.
Uses POST /v1beta/models/{model}:generateContent with inline image and text parts.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class ModelError(Exception):
    pass


class TransportError(ModelError):
    """The model invocation itself failed (network error or provider error status)."""


class ModelResponseError(ModelError):
    """The model answered, but not with the payload the caller asked for."""


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def image_part(mime_type: str, data_b64: str) -> Dict[str, Any]:
    return {"inlineData": {"mimeType": mime_type, "data": data_b64}}


def find_image(parts: List[Dict[str, Any]]) -> Optional[str]:
    """Return the first inline image in ``parts`` as a data URI, or None."""
    for part in parts:
        inline_data = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline_data, dict) and inline_data.get("data"):
            mime = inline_data.get("mimeType") or inline_data.get("mime_type") or "image/png"
            return f"data:{mime};base64,{inline_data['data']}"
    return None


def find_text(parts: List[Dict[str, Any]]) -> Optional[str]:
    texts = [part["text"] for part in parts if isinstance(part.get("text"), str)]
    if not texts:
        return None
    return "".join(texts)


class GeminiClient:
    """Client for Gemini POST :generateContent (single-turn, no streaming)."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout_seconds: int = 120,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def generate_content(
        self,
        model: str,
        parts: List[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Send one user turn made of ``parts``. Returns the parts of all candidates, in order.
        Raises TransportError when the request fails or the provider answers with an error status.
        """
        if not self.api_key:
            raise TransportError("Gemini API key is not configured (set GEMINI_API_KEY).")

        url = f"{self.base_url}/v1beta/models/{model}:generateContent"
        payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if generation_config:
            payload["generationConfig"] = generation_config

        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
                r = client.post(url, json=payload, headers=self._headers())
        except httpx.RequestError as e:
            logger.warning("Gemini request to %s failed: %s", model, e)
            raise TransportError(f"Gemini request failed: {e}") from e

        if r.status_code >= 400:
            logger.warning("Gemini API error %s for %s", r.status_code, model)
            raise TransportError(f"Gemini API error {r.status_code}: {_error_message(r)}")

        try:
            resp = r.json()
        except ValueError as e:
            raise ModelResponseError(f"Gemini returned a non-JSON body: {r.text[:200]}") from e
        if not isinstance(resp, dict):
            raise ModelResponseError(f"Gemini returned an unexpected body: {r.text[:200]}")

        collected: List[Dict[str, Any]] = []
        for candidate in _as_list(resp.get("candidates")):
            if not isinstance(candidate, dict):
                raise ModelResponseError(f"Gemini returned a malformed candidate: {str(candidate)[:200]}")
            content = candidate.get("content")
            if content is None:
                continue
            if not isinstance(content, dict):
                raise ModelResponseError(f"Gemini returned a malformed candidate: {str(candidate)[:200]}")
            for part in _as_list(content.get("parts")):
                if not isinstance(part, dict):
                    raise ModelResponseError(f"Gemini returned a malformed part: {str(part)[:200]}")
                collected.append(part)
        if not collected:
            feedback = resp.get("promptFeedback")
            if isinstance(feedback, dict) and feedback.get("blockReason"):
                logger.warning("Gemini blocked the prompt: %s", feedback["blockReason"])
        logger.info("Gemini %s returned %d part(s)", model, len(collected))
        return collected


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ModelResponseError(f"Gemini returned {type(value).__name__} where a list was expected")
    return value


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text[:500]
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    return r.text[:500]

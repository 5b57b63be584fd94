"""
Style suggestions – asks Gemini for short descriptions of styles that suit a content image.
"""
import asyncio
import json
import logging

from pydantic import ValidationError

from clients.gemini_client import GeminiClient, ModelResponseError, find_text, text_part
from models.schemas import SuggestionRequest, SuggestionResponse
from services.style_transfer import MissingInputError

logger = logging.getLogger(__name__)

SUGGESTION_PROMPT = """You are an AI assistant that suggests style images based on the content of the image.
The user will provide a description of the content image, and you should suggest 3 different styles that could be applied to the content image.
These suggestions should be in the form of a description of the style, such as "Impressionist painting", "Pencil sketch", or "Cyberpunk illustration".

Content Description: {content_description}
"""

SUGGESTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "styleImageSuggestions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "An array of suggested style image descriptions.",
        }
    },
    "required": ["styleImageSuggestions"],
}


class SuggestionService:
    def __init__(self, client: GeminiClient, model: str = "gemini-2.0-flash"):
        self.client = client
        self.model = model

    def suggest_sync(self, request: SuggestionRequest) -> SuggestionResponse:
        description = request.content_description.strip()
        if not description:
            raise MissingInputError("Please describe the content image.")

        parts = [text_part(SUGGESTION_PROMPT.format(content_description=description))]
        response_parts = self.client.generate_content(
            self.model,
            parts,
            generation_config={
                "responseMimeType": "application/json",
                "responseSchema": SUGGESTION_SCHEMA,
            },
        )
        raw = find_text(response_parts)
        if raw is None:
            raise ModelResponseError("Style suggestion did not return any text.")
        try:
            result = SuggestionResponse.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning("Unparsable suggestion output: %s", raw[:200])
            raise ModelResponseError(f"Style suggestion returned an unexpected shape: {e}") from e
        # The prompt asks for 3; the count is advisory.
        logger.info("Received %d style suggestion(s)", len(result.style_image_suggestions))
        return result

    async def suggest(self, request: SuggestionRequest) -> SuggestionResponse:
        return await asyncio.to_thread(self.suggest_sync, request)

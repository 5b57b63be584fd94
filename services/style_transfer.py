"""
Style transfer service – sends content and style images to Gemini and returns the generated image.
"""
import asyncio
import logging

from clients.gemini_client import GeminiClient, ModelResponseError, find_image, image_part, text_part
from models.schemas import StyleTransferRequest, StyleTransferResponse
from services.uploader import DEFAULT_MAX_BYTES, check_image_data_uri

logger = logging.getLogger(__name__)

STYLE_TRANSFER_INSTRUCTION = "Apply the style of the following image to the content image."

# Image generation models need both modalities enabled.
RESPONSE_MODALITIES = ["TEXT", "IMAGE"]


class MissingInputError(ValueError):
    pass


class StyleTransferService:
    def __init__(
        self,
        client: GeminiClient,
        model: str = "gemini-2.0-flash-exp",
        max_image_bytes: int = DEFAULT_MAX_BYTES,
    ):
        self.client = client
        self.model = model
        self.max_image_bytes = max_image_bytes

    def build_parts(self, request: StyleTransferRequest) -> list:
        """Prompt parts in order: content image, instruction, style image."""
        if not request.content_image.strip() or not request.style_image.strip():
            raise MissingInputError("Please upload both a content image and a style image.")
        content_mime, content_data = check_image_data_uri(request.content_image, self.max_image_bytes)
        style_mime, style_data = check_image_data_uri(request.style_image, self.max_image_bytes)
        return [
            image_part(content_mime, content_data),
            text_part(STYLE_TRANSFER_INSTRUCTION),
            image_part(style_mime, style_data),
        ]

    def transfer_style_sync(self, request: StyleTransferRequest) -> StyleTransferResponse:
        """Blocking model call. Raises ModelResponseError when no image comes back."""
        parts = self.build_parts(request)
        response_parts = self.client.generate_content(
            self.model,
            parts,
            generation_config={"responseModalities": RESPONSE_MODALITIES},
        )
        stylized = find_image(response_parts)
        if not stylized:
            raise ModelResponseError("Style transfer did not return an image.")
        logger.info("Style transfer completed with %s", self.model)
        return StyleTransferResponse(stylized_image=stylized)

    async def transfer_style(self, request: StyleTransferRequest) -> StyleTransferResponse:
        """Run style transfer without blocking event loop."""
        return await asyncio.to_thread(self.transfer_style_sync, request)

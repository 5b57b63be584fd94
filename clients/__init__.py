from .gemini_client import GeminiClient, ModelError, ModelResponseError, TransportError

__all__ = ["GeminiClient", "ModelError", "ModelResponseError", "TransportError"]

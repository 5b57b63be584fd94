from .schemas import (
    ErrorResponse,
    FormView,
    StyleTransferRequest,
    StyleTransferResponse,
    SuggestionRequest,
    SuggestionResponse,
)

__all__ = [
    "ErrorResponse",
    "FormView",
    "StyleTransferRequest",
    "StyleTransferResponse",
    "SuggestionRequest",
    "SuggestionResponse",
]

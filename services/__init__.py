from .form_controller import FormController, FormSessionStore
from .style_transfer import MissingInputError, StyleTransferService
from .suggestions import SuggestionService

__all__ = [
    "FormController",
    "FormSessionStore",
    "MissingInputError",
    "StyleTransferService",
    "SuggestionService",
]

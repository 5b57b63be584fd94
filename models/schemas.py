from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StyleTransferRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    content_image: str = Field(
        default="",
        alias="contentImage",
        description="Content image as a data URI: 'data:<mimetype>;base64,<encoded_data>'",
    )
    style_image: str = Field(
        default="",
        alias="styleImage",
        description="Style image as a data URI: 'data:<mimetype>;base64,<encoded_data>'",
    )


class StyleTransferResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    stylized_image: str = Field(..., alias="stylizedImage", description="Stylized image as a data URI")


class SuggestionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    content_description: str = Field(
        default="", alias="contentDescription", description="Description of the content image"
    )


class SuggestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    style_image_suggestions: List[str] = Field(
        ..., alias="styleImageSuggestions", description="Suggested style descriptions"
    )


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None


class FormView(BaseModel):
    status: str
    status_message: str
    has_content_image: bool = False
    has_style_image: bool = False
    can_submit: bool = False
    is_loading: bool = False
    error: Optional[str] = None
    stylized_image: Optional[str] = None

"""
Form state for the style transfer page: two image slots, one request cycle.

The transitions are pure functions over an immutable FormState; FormController holds the
current state for one browser session and drives the style transfer call.
"""
import logging
import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from clients.gemini_client import ModelError
from models.schemas import FormView, StyleTransferRequest
from services.style_transfer import MissingInputError, StyleTransferService
from services.uploader import InvalidImageError, parse_data_uri

logger = logging.getLogger(__name__)

DOWNLOAD_FILENAME = "artistic_alchemist_stylized_image.png"

MSG_BEGIN = "Upload content and style images to begin."
MSG_NEED_CONTENT = "Upload a content image."
MSG_NEED_STYLE = "Upload a style image."
MSG_READY = "Ready to transfer style."
MSG_SUBMITTING = "Applying artistic style... This may take a moment."
MSG_DONE = "Style transfer complete! Your masterpiece is ready."
MSG_MISSING = "Please upload both a content image and a style image."


class FormStatus(str, Enum):
    EMPTY = "empty"
    ONE_IMAGE = "one_image"
    READY = "ready"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class FormBusyError(Exception):
    pass


class NoResultError(Exception):
    pass


@dataclass(frozen=True)
class FormState:
    content_image: Optional[str] = None
    style_image: Optional[str] = None
    stylized_image: Optional[str] = None
    error: Optional[str] = None
    status: FormStatus = FormStatus.EMPTY
    status_message: str = MSG_BEGIN


def _upload_status(content_image: Optional[str], style_image: Optional[str]) -> Tuple[FormStatus, str]:
    if content_image and style_image:
        return FormStatus.READY, MSG_READY
    if not content_image and not style_image:
        return FormStatus.EMPTY, MSG_BEGIN
    if not content_image:
        return FormStatus.ONE_IMAGE, MSG_NEED_CONTENT
    return FormStatus.ONE_IMAGE, MSG_NEED_STYLE


def _with_images(content_image: Optional[str], style_image: Optional[str]) -> FormState:
    status, message = _upload_status(content_image, style_image)
    return FormState(
        content_image=content_image,
        style_image=style_image,
        stylized_image=None,
        error=None,
        status=status,
        status_message=message,
    )


def set_content_image(state: FormState, data_uri: Optional[str]) -> FormState:
    return _with_images(data_uri or None, state.style_image)


def set_style_image(state: FormState, data_uri: Optional[str]) -> FormState:
    return _with_images(state.content_image, data_uri or None)


def can_submit(state: FormState) -> bool:
    return (
        state.status != FormStatus.SUBMITTING
        and bool(state.content_image)
        and bool(state.style_image)
    )


def begin_submit(state: FormState) -> FormState:
    if state.status == FormStatus.SUBMITTING:
        raise FormBusyError("A style transfer is already in progress.")
    if not state.content_image or not state.style_image:
        raise MissingInputError(MSG_MISSING)
    return replace(
        state,
        stylized_image=None,
        error=None,
        status=FormStatus.SUBMITTING,
        status_message=MSG_SUBMITTING,
    )


def reject_missing(state: FormState) -> FormState:
    """Validation failure before any model call: keep images, point at what is missing."""
    _, message = _upload_status(state.content_image, state.style_image)
    return replace(state, stylized_image=None, error=MSG_MISSING, status_message=message)


def complete(state: FormState, stylized_image: str) -> FormState:
    return replace(
        state,
        stylized_image=stylized_image,
        error=None,
        status=FormStatus.DONE,
        status_message=MSG_DONE,
    )


def fail(state: FormState, message: str) -> FormState:
    return replace(
        state,
        stylized_image=None,
        error=message,
        status=FormStatus.FAILED,
        status_message=f"Error: {message}",
    )


def to_view(state: FormState, in_flight: bool = False) -> FormView:
    loading = in_flight or state.status == FormStatus.SUBMITTING
    return FormView(
        status=state.status.value,
        status_message=state.status_message,
        has_content_image=bool(state.content_image),
        has_style_image=bool(state.style_image),
        can_submit=can_submit(state) and not loading,
        is_loading=loading,
        error=state.error,
        stylized_image=state.stylized_image,
    )


class FormController:
    def __init__(self, state: Optional[FormState] = None):
        self.state = state or FormState()
        self.in_flight = False

    def upload_content_image(self, data_uri: Optional[str]) -> FormState:
        self.state = set_content_image(self.state, data_uri)
        return self.state

    def upload_style_image(self, data_uri: Optional[str]) -> FormState:
        self.state = set_style_image(self.state, data_uri)
        return self.state

    async def submit(self, service: StyleTransferService) -> FormState:
        """
        Run one style transfer. Model failures end in FAILED with the message in the state;
        a missing image raises MissingInputError after recording it, without calling the model.
        """
        if self.in_flight:
            raise FormBusyError("A style transfer is already in progress.")
        try:
            submitting = begin_submit(self.state)
        except MissingInputError:
            self.state = reject_missing(self.state)
            raise
        self.state = submitting
        self.in_flight = True

        request = StyleTransferRequest(
            content_image=submitting.content_image,
            style_image=submitting.style_image,
        )
        try:
            result = await service.transfer_style(request)
        except (ModelError, MissingInputError, InvalidImageError) as e:
            logger.warning("Style transfer failed: %s", e)
            self.state = _resolve(self.state, submitting, lambda s: fail(s, str(e)))
            return self.state
        except Exception as e:
            logger.exception("Unexpected style transfer error")
            message = str(e) or "An unknown error occurred during style transfer."
            self.state = _resolve(self.state, submitting, lambda s: fail(s, message))
            return self.state
        else:
            self.state = _resolve(self.state, submitting, lambda s: complete(s, result.stylized_image))
            return self.state
        finally:
            self.in_flight = False
            # Cancellation and other BaseExceptions skip the handlers above.
            if self.state is submitting:
                self.state = fail(submitting, "Style transfer was interrupted.")

    def download(self) -> Tuple[bytes, str]:
        if not self.state.stylized_image:
            raise NoResultError("No stylized image to download.")
        mime_type, content = parse_data_uri(self.state.stylized_image)
        return content, mime_type

    def view(self) -> FormView:
        return to_view(self.state, self.in_flight)


def _resolve(current: FormState, submitted: FormState, apply) -> FormState:
    # An image replaced mid-flight already reset the form; the stale result is dropped.
    if current is not submitted:
        return current
    return apply(current)


class FormSessionStore:
    """In-memory FormController per browser session, evicted after ``ttl_seconds`` idle."""

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, FormController] = {}
        self._last_seen: Dict[str, float] = {}

    def get(self, session_id: Optional[str]) -> Optional[FormController]:
        """Look up a live session without creating one."""
        self.evict_expired()
        if not session_id or session_id not in self._sessions:
            return None
        self._last_seen[session_id] = self._clock()
        return self._sessions[session_id]

    def get_or_create(self, session_id: Optional[str]) -> Tuple[str, FormController]:
        controller = self.get(session_id)
        if controller is not None:
            return session_id, controller
        new_id = uuid.uuid4().hex
        controller = FormController()
        self._sessions[new_id] = controller
        self._last_seen[new_id] = self._clock()
        return new_id, controller

    def evict_expired(self) -> int:
        """Drop idle sessions. A session with a call in flight is kept."""
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            sid for sid, seen in self._last_seen.items()
            if seen < cutoff and not self._sessions[sid].in_flight
        ]
        for sid in expired:
            del self._sessions[sid]
            del self._last_seen[sid]
        if expired:
            logger.info("Evicted %d idle form session(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

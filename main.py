"""
FastAPI application for Artistic Alchemist – AI style transfer between two images.
"""
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from clients import GeminiClient, ModelResponseError, TransportError
from config import get_settings
from models import (
    ErrorResponse,
    FormView,
    StyleTransferRequest,
    StyleTransferResponse,
    SuggestionRequest,
    SuggestionResponse,
)
from services import FormController, FormSessionStore, MissingInputError, StyleTransferService, SuggestionService
from services.form_controller import DOWNLOAD_FILENAME, FormBusyError, NoResultError
from services.uploader import InvalidImageError, read_upload

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

STATIC_DIR = Path(__file__).parent / "static"

_FORM_SESSIONS = FormSessionStore(ttl_seconds=get_settings().session_ttl_seconds)


def get_gemini_client() -> GeminiClient:
    settings = get_settings()
    return GeminiClient(
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
        timeout_seconds=settings.api_timeout_seconds,
    )


def get_style_transfer_service() -> StyleTransferService:
    settings = get_settings()
    return StyleTransferService(
        get_gemini_client(),
        model=settings.style_transfer_model,
        max_image_bytes=settings.max_upload_bytes,
    )


def get_suggestion_service() -> SuggestionService:
    return SuggestionService(get_gemini_client(), model=get_settings().suggestion_model)


def get_form_sessions() -> FormSessionStore:
    return _FORM_SESSIONS


async def _session_cleanup_loop() -> None:
    """Evict idle form sessions every SESSION_CLEANUP_INTERVAL_SECONDS."""
    interval = get_settings().session_cleanup_interval_seconds
    while True:
        await asyncio.sleep(interval)
        try:
            get_form_sessions().evict_expired()
        except Exception as e:
            logger.warning("Session cleanup loop error: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Artistic Alchemist starting")
    s = get_settings()
    if not s.gemini_api_key:
        logger.warning("Gemini: GEMINI_API_KEY not set; model calls will fail")
    else:
        logger.info("Gemini: style transfer=%s, suggestions=%s", s.style_transfer_model, s.suggestion_model)
    cleanup_task = asyncio.create_task(_session_cleanup_loop())
    yield
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass
    logger.info("Artistic Alchemist shutting down")


app = FastAPI(
    title="Artistic Alchemist",
    description="Apply the style of one image to the content of another",
    version="1.0.0",
    lifespan=lifespan,
)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

_HTML_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate", "Pragma": "no-cache", "Expires": "0"}


# ── Error mapping ────────────────────────────────────────────

def _error(status_code: int, detail: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=detail, code=code).model_dump(),
    )


@app.exception_handler(MissingInputError)
async def missing_input_handler(request: Request, exc: MissingInputError) -> JSONResponse:
    logger.warning("Missing input on %s: %s", request.url.path, exc)
    return _error(400, str(exc), "missing_input")


@app.exception_handler(InvalidImageError)
async def invalid_image_handler(request: Request, exc: InvalidImageError) -> JSONResponse:
    logger.warning("Invalid image on %s: %s", request.url.path, exc)
    return _error(400, str(exc), "invalid_image")


@app.exception_handler(ModelResponseError)
async def model_response_handler(request: Request, exc: ModelResponseError) -> JSONResponse:
    logger.warning("Model response error on %s: %s", request.url.path, exc)
    return _error(502, str(exc), "model_response")


@app.exception_handler(TransportError)
async def transport_handler(request: Request, exc: TransportError) -> JSONResponse:
    logger.warning("Model transport error on %s: %s", request.url.path, exc)
    return _error(502, str(exc), "transport")


@app.exception_handler(FormBusyError)
async def busy_handler(request: Request, exc: FormBusyError) -> JSONResponse:
    return _error(409, str(exc), "busy")


@app.exception_handler(NoResultError)
async def no_result_handler(request: Request, exc: NoResultError) -> JSONResponse:
    return _error(404, str(exc), "no_result")


# ── Page routes ──────────────────────────────────────────────

@app.get("/health")
async def health() -> JSONResponse:
    """Lightweight health endpoint for uptime checks."""
    return JSONResponse({"status": "ok"})


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html", headers=_HTML_HEADERS)


# ── Model API ────────────────────────────────────────────────

@app.post("/api/style-transfer", response_model=StyleTransferResponse)
async def style_transfer(
    body: StyleTransferRequest,
    service: StyleTransferService = Depends(get_style_transfer_service),
) -> StyleTransferResponse:
    """Stylize content image with style image. Both are data URIs."""
    return await service.transfer_style(body)


@app.post("/api/suggest-styles", response_model=SuggestionResponse)
async def suggest_styles(
    body: SuggestionRequest,
    service: SuggestionService = Depends(get_suggestion_service),
) -> SuggestionResponse:
    """Suggest style descriptions for a described content image."""
    return await service.suggest(body)


# ── Form API ─────────────────────────────────────────────────

def _session(request: Request, sessions: FormSessionStore) -> tuple[str, FormController]:
    return sessions.get_or_create(request.cookies.get(get_settings().session_cookie_name))


def _form_response(session_id: str, view: FormView, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=view.model_dump())
    response.set_cookie(get_settings().session_cookie_name, session_id, httponly=True, samesite="lax")
    return response


@app.get("/api/form", response_model=FormView)
async def get_form(request: Request, sessions: FormSessionStore = Depends(get_form_sessions)) -> JSONResponse:
    session_id, form = _session(request, sessions)
    return _form_response(session_id, form.view())


async def _upload(request: Request, sessions: FormSessionStore, file: Optional[UploadFile], slot: str) -> JSONResponse:
    session_id, form = _session(request, sessions)
    image = await read_upload(file, get_settings().max_upload_bytes)
    data_uri = image.data_uri if image else None
    if slot == "content":
        form.upload_content_image(data_uri)
    else:
        form.upload_style_image(data_uri)
    return _form_response(session_id, form.view())


@app.post("/api/form/content-image", response_model=FormView)
async def upload_content_image(
    request: Request,
    file: Optional[UploadFile] = File(None),
    sessions: FormSessionStore = Depends(get_form_sessions),
) -> JSONResponse:
    """Set the content image. An empty file clears the slot."""
    return await _upload(request, sessions, file, "content")


@app.delete("/api/form/content-image", response_model=FormView)
async def clear_content_image(request: Request, sessions: FormSessionStore = Depends(get_form_sessions)) -> JSONResponse:
    return await _upload(request, sessions, None, "content")


@app.post("/api/form/style-image", response_model=FormView)
async def upload_style_image(
    request: Request,
    file: Optional[UploadFile] = File(None),
    sessions: FormSessionStore = Depends(get_form_sessions),
) -> JSONResponse:
    """Set the style image. An empty file clears the slot."""
    return await _upload(request, sessions, file, "style")


@app.delete("/api/form/style-image", response_model=FormView)
async def clear_style_image(request: Request, sessions: FormSessionStore = Depends(get_form_sessions)) -> JSONResponse:
    return await _upload(request, sessions, None, "style")


@app.post("/api/form/submit", response_model=FormView)
async def submit_form(
    request: Request,
    sessions: FormSessionStore = Depends(get_form_sessions),
    service: StyleTransferService = Depends(get_style_transfer_service),
) -> JSONResponse:
    """Run one style transfer for this session. Model failures come back as a FAILED view."""
    session_id, form = _session(request, sessions)
    try:
        await form.submit(service)
    except MissingInputError:
        return _form_response(session_id, form.view(), status_code=400)
    return _form_response(session_id, form.view())


@app.get("/api/form/download")
async def download_result(request: Request, sessions: FormSessionStore = Depends(get_form_sessions)) -> Response:
    form = sessions.get(request.cookies.get(get_settings().session_cookie_name))
    if form is None:
        raise NoResultError("No stylized image to download.")
    content, mime_type = form.download()
    return Response(
        content=content,
        media_type=mime_type,
        headers={"Content-Disposition": f'attachment; filename="{DOWNLOAD_FILENAME}"'},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8001,
        reload=True,
    )

"""
HTTP proxy backend for the Arqui-IA clients.

Architectural role:
- Expose the small JSON contract consumed by the proxy transport
  (`arquia.llm.client.send_proxy_request`).
- Keep the provider key on the server: every route calls the direct transport.

Endpoint responsibilities:
- `POST /api/analyze`: `{prompt, imageBase64, mimeType}` -> `{text}`
- `POST /api/analyze-multi`: `{prompt, images: [{imageBase64, mimeType}]}` -> `{text}`
- `POST /api/chat`: `{history, message}` -> `{text}`
- `POST /api/generate`: `{prompt}` -> `{imageUrl}`

Input validation behavior:
- Malformed bodies (missing fields, wrong types) -> HTTP 400 `{error}`.
- Blank prompt/message or invalid image payload -> HTTP 400 `{error}`.

Error handling strategy:
- Provider failures (`BackendError`) -> HTTP 502 `{error}` with the provider
  message, so clients can surface it verbatim.
- Unexpected exceptions follow FastAPI default handling.

Side effects:
- Loads environment variables at import time via `load_dotenv()`.
- Configures root logging from `LOG_LEVEL` when no handler is installed.
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from arquia.image.service import generate_concept_image
from arquia.llm.client import BackendError
from arquia.llm.service import (
    DirectChatBackend,
    ImagePayload,
    analyze_blueprint,
    analyze_multi_page_blueprint,
)


log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Solicitud no válida."

app = FastAPI(title="Arqui-IA proxy")


# ============================================================
# Request Schemas
# ============================================================

class AnalyzeRequest(BaseModel):
    prompt: str
    imageBase64: str
    mimeType: str


class ImageItem(BaseModel):
    imageBase64: str
    mimeType: str


class AnalyzeMultiRequest(BaseModel):
    prompt: str
    images: list[ImageItem]


class HistoryPart(BaseModel):
    text: str


class HistoryEntry(BaseModel):
    role: str
    parts: list[HistoryPart]


class ChatRequest(BaseModel):
    history: list[HistoryEntry] = Field(default_factory=list)
    message: str


class GenerateRequest(BaseModel):
    prompt: str


# ============================================================
# Error Mapping
# ============================================================

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Report schema violations with the `{error}` convention instead of 422."""
    logger.info("Rejected malformed request to %s", request.url.path)
    return _error_response(400, INVALID_REQUEST_MESSAGE)


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError):
    return _error_response(400, str(exc) or INVALID_REQUEST_MESSAGE)


@app.exception_handler(BackendError)
async def handle_backend_error(request: Request, exc: BackendError):
    logger.warning("Provider call for %s failed: %s", request.url.path, exc.message)
    return _error_response(502, exc.message)


# ============================================================
# Routes
# ============================================================

@app.post("/api/analyze")
def analyze(body: AnalyzeRequest):
    """Single-image blueprint analysis."""
    text = analyze_blueprint(body.prompt, body.imageBase64, body.mimeType, mode="direct")
    return {"text": text}


@app.post("/api/analyze-multi")
def analyze_multi(body: AnalyzeMultiRequest):
    """Multi-page blueprint analysis; images are analyzed in the given order."""
    images = [
        ImagePayload(base64=item.imageBase64, mime_type=item.mimeType)
        for item in body.images
    ]
    text = analyze_multi_page_blueprint(body.prompt, images, mode="direct")
    return {"text": text}


@app.post("/api/chat")
def chat(body: ChatRequest):
    """
    One chat turn.

    The client resends the full history on every call; the server keeps no
    session state.
    """
    history = [entry.model_dump() for entry in body.history]
    text = DirectChatBackend().send(body.message, history)
    return {"text": text}


@app.post("/api/generate")
def generate(body: GenerateRequest):
    """Concept image generation; `imageUrl` is empty when no image was produced."""
    image_url = generate_concept_image(body.prompt, mode="direct")
    return {"imageUrl": image_url}

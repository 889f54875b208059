"""Operation-level request adapter for blueprint analysis and chat.

Architectural role:
    Provides the canonical entrypoints used by the state holders (`arquia.blueprint`,
    `arquia.memory`) and by the proxy backend. This module validates inputs, builds
    the request for the selected transport and extracts the result; transport
    itself lives in `arquia.llm.client`.

Model call flow:
    operation -> input validation -> payload for `proxy` or `direct` transport ->
    `client.send_proxy_request(...)` / `client.send_gemini_request(...)` -> text.

Transport selection:
    Each operation accepts an optional `mode`; when omitted `BACKEND_MODE` from
    configuration is used. Runtime type inspection is never used to pick a path.

Failure scenarios:
    - Invalid inputs raise `ValueError` before any network call.
    - Transport/backend failures raise `BackendError` (see `client`).
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Protocol

from arquia.llm.client import (
    BackendError,
    MALFORMED_RESPONSE_MESSAGE,
    send_gemini_request,
    send_proxy_request,
)
from arquia.llm.provider_config import (
    ANALYZE_MULTI_PATH,
    ANALYZE_PATH,
    BACKEND_MODE,
    BACKEND_MODES,
    CHAT_PATH,
    MULTI_PAGE_ANALYSIS,
)
from arquia.prompting.prompt_builder import CHAT_SYSTEM_INSTRUCTION, page_label


logger = logging.getLogger(__name__)

EMPTY_PROMPT_MESSAGE = "La instrucción no puede estar vacía."
INVALID_IMAGE_MESSAGE = "La imagen debe estar codificada en base64."
INVALID_MIME_MESSAGE = "Tipo MIME de imagen no válido: {mime_type}"
NO_IMAGES_MESSAGE = "Se necesita al menos una imagen para el análisis."
MULTI_PAGE_DISABLED_MESSAGE = (
    "El análisis de múltiples páginas no está habilitado en este servidor."
)


@dataclass(frozen=True)
class ImagePayload:
    """One image of an analysis request: raw base64 (no data-URL header) + MIME type."""

    base64: str
    mime_type: str


# =========================================================
# VALIDATION
# =========================================================

def validate_prompt(prompt: str) -> str:
    """Return `prompt` unchanged or raise `ValueError` when it is blank."""
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValueError(EMPTY_PROMPT_MESSAGE)
    return prompt


def validate_image(image_base64: str, mime_type: str) -> None:
    """Check that an image payload is base64 with an `image/*` MIME type.

    Raises:
        ValueError: empty/invalid base64 or a non-image MIME type.
    """
    if not isinstance(mime_type, str) or not mime_type.startswith("image/"):
        raise ValueError(INVALID_MIME_MESSAGE.format(mime_type=mime_type))
    if not isinstance(image_base64, str) or not image_base64:
        raise ValueError(INVALID_IMAGE_MESSAGE)
    try:
        base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError(INVALID_IMAGE_MESSAGE) from err


def resolve_mode(mode: str | None) -> str:
    """Return the effective transport, rejecting unknown names."""
    resolved = (mode or BACKEND_MODE).strip().lower()
    if resolved not in BACKEND_MODES:
        raise ValueError(f"Unknown backend mode: {resolved}")
    return resolved


def _require_text(data: dict, key: str = "text") -> str:
    """Extract a string field from a proxy response or raise `BackendError`."""
    value = data.get(key)
    if not isinstance(value, str):
        logger.warning("Proxy response is missing string field %r", key)
        raise BackendError(MALFORMED_RESPONSE_MESSAGE)
    return value


def _inline_image(image: ImagePayload) -> dict:
    """Build a Gemini `inline_data` part."""
    return {"inline_data": {"mime_type": image.mime_type, "data": image.base64}}


# =========================================================
# ANALYSIS
# =========================================================

def analyze_blueprint(
    prompt: str,
    image_base64: str,
    mime_type: str,
    mode: str | None = None,
) -> str:
    """Analyze one blueprint image.

    Args:
        prompt: Analysis instruction (non-empty).
        image_base64: Raw base64 image bytes.
        mime_type: MIME type matching the image bytes.
        mode: Optional transport override (`proxy` or `direct`).

    Returns:
        Markdown analysis text.
    """
    validate_prompt(prompt)
    validate_image(image_base64, mime_type)

    if resolve_mode(mode) == "direct":
        image = ImagePayload(base64=image_base64, mime_type=mime_type)
        contents = [{
            "role": "user",
            "parts": [_inline_image(image), {"text": prompt}],
        }]
        return send_gemini_request(contents)

    data = send_proxy_request(ANALYZE_PATH, {
        "prompt": prompt,
        "imageBase64": image_base64,
        "mimeType": mime_type,
    })
    return _require_text(data)


def analyze_multi_page_blueprint(
    prompt: str,
    images: list[ImagePayload],
    mode: str | None = None,
) -> str:
    """Analyze several page images in one request.

    Args:
        prompt: Instruction, already wrapped with the multi-page preamble by the
            caller.
        images: Page images in page order.
        mode: Optional transport override.

    Returns:
        Consolidated Markdown report.

    Edge cases:
        - Raises `ValueError` when `MULTI_PAGE_ANALYSIS` is disabled.
        - In direct mode each image is preceded by a `Página N:` text part so the
          model can label its sections.
    """
    if not MULTI_PAGE_ANALYSIS:
        raise ValueError(MULTI_PAGE_DISABLED_MESSAGE)
    validate_prompt(prompt)
    if not images:
        raise ValueError(NO_IMAGES_MESSAGE)
    for image in images:
        validate_image(image.base64, image.mime_type)

    if resolve_mode(mode) == "direct":
        parts = [{"text": prompt}]
        for page_number, image in enumerate(images, start=1):
            parts.append({"text": page_label(page_number)})
            parts.append(_inline_image(image))
        return send_gemini_request([{"role": "user", "parts": parts}])

    data = send_proxy_request(ANALYZE_MULTI_PATH, {
        "prompt": prompt,
        "images": [
            {"imageBase64": image.base64, "mimeType": image.mime_type}
            for image in images
        ],
    })
    return _require_text(data)


# =========================================================
# CHAT BACKENDS
# =========================================================

class ChatBackend(Protocol):
    """Minimal interface required by `ChatSession`."""

    def send(self, message: str, history: list[dict]) -> str:
        """Send `message` after `history` (Gemini-shaped turns); return reply text."""
        ...


class ProxyChatBackend:
    """Chat backend that posts `{history, message}` to the proxy `/api/chat` route."""

    def send(self, message: str, history: list[dict]) -> str:
        validate_prompt(message)
        data = send_proxy_request(CHAT_PATH, {
            "history": history,
            "message": message,
        })
        return _require_text(data)


class DirectChatBackend:
    """Chat backend that calls Gemini with the architecture system instruction."""

    def __init__(self, system_instruction: str = CHAT_SYSTEM_INSTRUCTION) -> None:
        self.system_instruction = system_instruction

    def send(self, message: str, history: list[dict]) -> str:
        validate_prompt(message)
        contents = list(history)
        contents.append({"role": "user", "parts": [{"text": message}]})
        return send_gemini_request(contents, system_instruction=self.system_instruction)


def get_chat_backend(mode: str | None = None) -> ChatBackend:
    """Return the chat backend for `mode` (defaults to `BACKEND_MODE`)."""
    if resolve_mode(mode) == "direct":
        return DirectChatBackend()
    return ProxyChatBackend()

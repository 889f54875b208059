"""Text-to-image HTTP client.

Processing flow:
    1. Proxy mode: POST `{prompt}` to `/api/generate` and read `imageUrl`.
    2. Direct mode: POST an Imagen `predict` request and turn the first
       prediction's `bytesBase64Encoded` into a data URL.

Error handling strategy:
    - Transport/status failures raise `BackendError` via `arquia.llm.client`.
    - A successful response without an image yields an empty string; deciding what
      that means for the user is left to the caller.
"""

import logging

from arquia.llm.client import (
    BackendError,
    MALFORMED_RESPONSE_MESSAGE,
    post_json,
    send_proxy_request,
    gemini_headers,
)
from arquia.llm.provider_config import (
    GENERATE_PATH,
    IMAGE_ASPECT_RATIO,
    IMAGE_MODEL_NAME,
    IMAGE_OUTPUT_MIME_TYPE,
    IMAGEN_URL_TEMPLATE,
)


logger = logging.getLogger(__name__)


def send_proxy_image_request(prompt: str) -> str:
    """Ask the proxy for a concept image; return `imageUrl` or `""` when absent."""
    data = send_proxy_request(GENERATE_PATH, {"prompt": prompt})
    image_url = data.get("imageUrl") or ""
    if not isinstance(image_url, str):
        logger.warning("Proxy returned a non-string imageUrl")
        raise BackendError(MALFORMED_RESPONSE_MESSAGE)
    return image_url


def send_imagen_request(prompt: str, model: str | None = None) -> str:
    """Generate one image with Imagen and return it as a data URL.

    Args:
        prompt: Text prompt for generation.
        model: Model override; defaults to `IMAGE_MODEL_NAME`.

    Returns:
        `data:<mime>;base64,<bytes>` string, or `""` when the provider returned no
        prediction (for example when the prompt was filtered).
    """
    url = IMAGEN_URL_TEMPLATE.format(model=model or IMAGE_MODEL_NAME)
    payload = {
        "instances": [{"prompt": prompt}],
        "parameters": {
            "sampleCount": 1,
            "aspectRatio": IMAGE_ASPECT_RATIO,
            "outputOptions": {"mimeType": IMAGE_OUTPUT_MIME_TYPE},
        },
    }

    data = post_json(url, payload, headers=gemini_headers())

    predictions = data.get("predictions") or []
    if not predictions or not isinstance(predictions[0], dict):
        logger.info("Imagen returned no predictions")
        return ""

    encoded = predictions[0].get("bytesBase64Encoded")
    if not encoded:
        return ""
    mime_type = predictions[0].get("mimeType") or IMAGE_OUTPUT_MIME_TYPE
    return f"data:{mime_type};base64,{encoded}"

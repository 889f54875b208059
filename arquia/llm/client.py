"""Transport client for backend proxy and direct provider requests.

Architectural role:
    Executes HTTP requests against the configured backend and normalizes response
    bodies and failures for `arquia.llm.service` and `arquia.image.client`.

Model invocation flow:
    `service.analyze_blueprint` -> `send_proxy_request(path, payload)` (proxy mode)
    or `send_gemini_request(contents)` (direct mode) -> parsed JSON/text.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once; the timeout
    follows `REQUEST_TIMEOUT_SECONDS` (none by default).

Failure handling model:
    Every non-2xx status, transport exception or malformed body is converted into
    a single `BackendError` carrying the server-provided message, or
    `DEFAULT_ERROR_MESSAGE` when the server gives none. Failures are logged once
    here and raised once to the caller.
"""

import logging

import requests

from arquia.llm.provider_config import (
    PROXY_BASE_URL,
    REQUEST_TIMEOUT_SECONDS,
    TEXT_MODEL_NAME,
    GEMINI_URL_TEMPLATE,
    GEMINI_KEY_FILE,
    load_key,
)


logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Error en la petición al proxy"
MALFORMED_RESPONSE_MESSAGE = "La respuesta del servidor no tiene un formato válido."
MISSING_KEY_MESSAGE = "GEMINI API KEY NOT FOUND"


class BackendError(RuntimeError):
    """Domain error raised for any failed backend/provider call.

    Attributes:
        message: User-displayable message (server-provided or fallback).
        status_code: HTTP status when a response was received, else `None`.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _extract_error_message(response: requests.Response) -> str:
    """Return the error text carried by a failed response body.

    Supported shapes:
        - proxy: `{"error": "text"}`
        - provider: `{"error": {"message": "text", ...}}`

    Falls back to `DEFAULT_ERROR_MESSAGE` for empty, non-JSON or unknown bodies.
    """
    try:
        data = response.json()
    except ValueError:
        return DEFAULT_ERROR_MESSAGE

    if not isinstance(data, dict):
        return DEFAULT_ERROR_MESSAGE

    error = data.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    if isinstance(error, str) and error.strip():
        return error
    return DEFAULT_ERROR_MESSAGE


def post_json(url: str, payload: dict, headers: dict | None = None) -> dict:
    """POST a JSON payload and return the decoded JSON object.

    Args:
        url: Absolute endpoint URL.
        payload: JSON-serializable request body.
        headers: Extra headers merged over `Content-Type: application/json`.

    Returns:
        Decoded JSON object (dict).

    Raises:
        BackendError: transport failure, non-2xx status, or a body that is not a
            JSON object.
    """
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    try:
        response = requests.post(
            url,
            headers=request_headers,
            json=payload,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except requests.exceptions.RequestException as err:
        logger.warning("Request to %s failed: %s", url, err.__class__.__name__)
        raise BackendError(DEFAULT_ERROR_MESSAGE) from err

    if not response.ok:
        message = _extract_error_message(response)
        logger.warning(
            "Request to %s returned HTTP %s: %s", url, response.status_code, message
        )
        raise BackendError(message, status_code=response.status_code)

    try:
        data = response.json()
    except ValueError as err:
        logger.warning("Request to %s returned a non-JSON body", url)
        raise BackendError(MALFORMED_RESPONSE_MESSAGE, status_code=response.status_code) from err

    if not isinstance(data, dict):
        logger.warning("Request to %s returned a non-object JSON body", url)
        raise BackendError(MALFORMED_RESPONSE_MESSAGE, status_code=response.status_code)

    return data


def send_proxy_request(path: str, payload: dict) -> dict:
    """Send one request to the backend proxy.

    Args:
        path: Fixed backend path (for example `/api/analyze`).
        payload: Request body matching the proxy contract for `path`.

    Returns:
        Decoded JSON response object.
    """
    return post_json(f"{PROXY_BASE_URL}{path}", payload)


def gemini_headers() -> dict:
    """Build provider headers or raise when no key is configured."""
    api_key = load_key(GEMINI_KEY_FILE)
    if not api_key:
        logger.error("Direct mode requested without a Gemini API key")
        raise BackendError(MISSING_KEY_MESSAGE)
    return {"x-goog-api-key": api_key}


def send_gemini_request(
    contents: list,
    system_instruction: str | None = None,
    model: str | None = None,
) -> str:
    """Send one `generateContent` request to Gemini and return the reply text.

    Args:
        contents: Gemini `contents` list (`{"role", "parts"}` entries).
        system_instruction: Optional system prompt.
        model: Model override; defaults to `TEXT_MODEL_NAME`.

    Returns:
        Concatenated text of the first candidate's parts, stripped.

    Raises:
        BackendError: missing key, transport failure, or a response without
            candidate text.
    """
    url = GEMINI_URL_TEMPLATE.format(model=model or TEXT_MODEL_NAME)

    gemini_payload = {"contents": contents}
    if system_instruction:
        gemini_payload["systemInstruction"] = {
            "parts": [{"text": system_instruction}],
        }

    data = post_json(url, gemini_payload, headers=gemini_headers())

    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as err:
        logger.warning("Gemini response had no candidate content")
        raise BackendError(MALFORMED_RESPONSE_MESSAGE) from err

    text = "".join(
        str(part.get("text", "")) for part in parts if isinstance(part, dict)
    )
    return text.strip()

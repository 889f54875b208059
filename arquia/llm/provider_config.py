"""Backend/runtime configuration for the LLM layer.

Architectural role:
    Centralizes transport selection, endpoint locations, model names and
    credential lookup for `arquia.llm.service`, `arquia.llm.client` and
    `arquia.image`.

Transport selection:
    - `proxy`: requests go to the backend proxy under `PROXY_BASE_URL`.
    - `direct`: requests go straight to the Gemini/Imagen REST endpoints.

Determinism:
    Deterministic for a fixed process environment and key files. Values are resolved
    at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None` and handled by `client` as a
    `BackendError` on the first direct call.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    """Parse a boolean environment flag (`1/true/yes/on`)."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_timeout(name):
    """Parse an optional positive timeout; unset or `0` disables it."""
    value = os.getenv(name, "").strip()
    if not value:
        return None
    seconds = float(value)
    return seconds if seconds > 0 else None


# Transport switch consumed by `service` and `image.client`.
BACKEND_MODE = os.getenv("BACKEND_MODE", "proxy").strip().lower()
BACKEND_MODES = ("proxy", "direct")

PROXY_BASE_URL = os.getenv("PROXY_BASE_URL", "http://127.0.0.1:8000").rstrip("/")

# No timeout unless configured: a hung call keeps the caller's loading flag set.
REQUEST_TIMEOUT_SECONDS = _env_timeout("REQUEST_TIMEOUT_SECONDS")

# Proxy paths (see the FastAPI app in `arquia.api.http_api`).
ANALYZE_PATH = "/api/analyze"
ANALYZE_MULTI_PATH = "/api/analyze-multi"
CHAT_PATH = "/api/chat"
GENERATE_PATH = "/api/generate"

# Whole-document PDF analysis switch (both transports).
MULTI_PAGE_ANALYSIS = _env_flag("MULTI_PAGE_ANALYSIS", True)

# Direct provider settings.
TEXT_MODEL_NAME = os.getenv("GEMINI_TEXT_MODEL", "gemini-2.5-flash")
IMAGE_MODEL_NAME = os.getenv("GEMINI_IMAGE_MODEL", "imagen-4.0-generate-001")
GEMINI_KEY_FILE = "config/gemini.key"

GEMINI_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:generateContent"
)

IMAGEN_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:predict"
)

# Concept images are requested as a single JPEG in landscape format.
IMAGE_OUTPUT_MIME_TYPE = "image/jpeg"
IMAGE_ASPECT_RATIO = "16:9"


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None

"""Image service dispatcher for concept generation.

Role in pipeline:
    - Receives the concept prompt from `ConceptGenerator` or the proxy backend.
    - Selects the transport path (`proxy` route vs. direct Imagen call).
    - Returns the image reference unchanged to upstream callers.

Error handling strategy:
    - Blank prompts and unknown transport names raise `ValueError` before
      any network call.
    - `BackendError` from the transport is intentionally propagated.
"""

from arquia.image.client import send_imagen_request, send_proxy_image_request
from arquia.llm.service import resolve_mode, validate_prompt


def generate_concept_image(prompt: str, mode: str | None = None) -> str:
    """Generate a concept image via the configured transport.

    Args:
        prompt: Text description of the design concept.
        mode: Optional transport override (`proxy` or `direct`).

    Returns:
        Image reference (data URL or proxy-provided URL), or `""` when the
        backend answered successfully without an image.
    """
    validate_prompt(prompt)

    if resolve_mode(mode) == "direct":
        return send_imagen_request(prompt)
    return send_proxy_image_request(prompt)

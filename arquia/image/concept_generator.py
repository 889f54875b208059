"""Concept generator state holder.

Lifecycle of `generate()`:
    1. Ignore the call when the prompt is blank or a generation is in flight.
    2. Set `is_loading`, clear the previous image and error, notify.
    3. Run `generate_concept_image` off the event loop.
    4. Store the image reference, or an error when the backend failed or returned
       no image.
    5. Reset `is_loading` and notify, whatever the outcome.
"""

import asyncio
import logging

from arquia.core.state import Observable
from arquia.image.service import generate_concept_image
from arquia.llm.client import BackendError
from arquia.prompting.prompt_builder import DEFAULT_CONCEPT_PROMPT


logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = (
    "El modelo no devolvió una imagen. Por favor, intenta con una instrucción diferente."
)
GENERATION_FAILED_MESSAGE = "La generación de la imagen falló: {message}"


class ConceptGenerator(Observable):
    """Prompt-to-image state: `prompt`, `generated_image`, `is_loading`, `error`."""

    def __init__(self, generate=generate_concept_image, prompt: str = DEFAULT_CONCEPT_PROMPT) -> None:
        super().__init__()
        self._generate = generate
        self.prompt = prompt
        self.generated_image: str | None = None
        self.is_loading = False
        self.error: str | None = None

    def set_prompt(self, prompt: str) -> None:
        self.prompt = prompt
        self._notify()

    async def generate(self) -> None:
        """Request one concept image for the current prompt."""
        prompt = self.prompt
        if not prompt or not prompt.strip() or self.is_loading:
            return

        self.is_loading = True
        self.error = None
        self.generated_image = None
        self._notify()

        try:
            image_url = await asyncio.to_thread(self._generate, prompt)
            if image_url:
                self.generated_image = image_url
            else:
                self.error = NO_IMAGE_MESSAGE
        except (BackendError, ValueError) as err:
            logger.warning("Concept generation failed: %s", err)
            self.error = GENERATION_FAILED_MESSAGE.format(message=str(err))
        finally:
            self.is_loading = False
            self._notify()

"""Blueprint analyzer state holder.

Architectural role:
- Owns the active uploaded artifact, the selected PDF page, the analysis
  instruction and the latest analysis result.
- Converts the artifact into image payloads and calls the request adapter.

Request lifecycle (`analyze`):
1. Check preconditions (artifact, instruction, page selection); failures set a
   specific message and return without a network call.
2. Single image: submit the image (or the selected page) with the instruction.
3. Whole PDF: render every page sequentially, wrap the instruction with the
   multi-page preamble and submit all images together.
4. Store the Markdown result, or a display message for the failure.

Error handling strategy:
- Validation problems, `BackendError` and `PdfRenderError` are turned into the
  `error` attribute; nothing is re-raised to the caller.
- Loading flags are reset on every exit path.

Concurrency:
- Blocking rendering and HTTP calls run through `asyncio.to_thread`.
- A second `analyze` while one is running is ignored.
- Work started for an artifact that has since been replaced or removed is
  discarded when it completes; only the active artifact's results land.
"""

import asyncio
import logging

from arquia.blueprint.artifacts import (
    ImageArtifact,
    PdfArtifact,
    SelectedPage,
    UnsupportedFileTypeError,
    build_image_artifact,
    classify_mime_type,
)
from arquia.blueprint.pdf_renderer import (
    JPEG_MIME_TYPE,
    PdfRenderError,
    RenderConfig,
    count_pages,
    render_all_pages,
    render_page,
    render_pdf_page_thumbnails,
    to_data_url,
)
from arquia.core.state import Observable
from arquia.llm.client import BackendError
from arquia.llm.provider_config import MULTI_PAGE_ANALYSIS
from arquia.llm.service import (
    ImagePayload,
    MULTI_PAGE_DISABLED_MESSAGE,
    analyze_blueprint,
    analyze_multi_page_blueprint,
)
from arquia.prompting.prompt_builder import DEFAULT_ANALYSIS_PROMPT, build_multi_page_prompt


logger = logging.getLogger(__name__)

PDF_PROCESSING_FAILED_MESSAGE = (
    "No se pudo procesar el archivo PDF. Puede que esté dañado o en un formato no compatible."
)
PAGE_RENDER_FAILED_MESSAGE = "No se pudo renderizar la página {page_number}."
INVALID_PAGE_MESSAGE = "La página {page_number} no existe en el documento."
MISSING_INPUT_MESSAGE = "Por favor, sube un archivo y proporciona una instrucción de análisis."
SELECT_PAGE_MESSAGE = (
    "Para el análisis de una sola página, por favor selecciona una página del PDF."
)
ANALYSIS_FAILED_MESSAGE = "El análisis falló: {message}"

MODE_PAGE = "page"
MODE_ALL = "all"


class BlueprintAnalyzer(Observable):
    """State for the blueprint upload and analysis flow.

    Attributes:
        uploaded_file: Active `ImageArtifact`/`PdfArtifact`, or `None`.
        selected_page: `SelectedPage` of the active PDF, or `None`.
        prompt: Analysis instruction (defaults to `DEFAULT_ANALYSIS_PROMPT`).
        analysis_result: Markdown of the latest analysis (`""` when none).
        error: User-facing message of the last failure, or `None`.
        is_loading / is_processing_pdf / analyzing_mode: progress indicators.
            `is_processing_pdf` stays true while any PDF job is running.
    """

    def __init__(
        self,
        analyze_single=analyze_blueprint,
        analyze_multi=analyze_multi_page_blueprint,
        render_config: RenderConfig | None = None,
        multi_page_enabled: bool = MULTI_PAGE_ANALYSIS,
    ) -> None:
        super().__init__()
        self._analyze_single = analyze_single
        self._analyze_multi = analyze_multi
        self.render_config = render_config or RenderConfig()
        self.multi_page_enabled = multi_page_enabled

        self.uploaded_file: ImageArtifact | PdfArtifact | None = None
        self.selected_page: SelectedPage | None = None
        self.prompt = DEFAULT_ANALYSIS_PROMPT
        self.analysis_result = ""
        self.error: str | None = None
        self.is_loading = False
        self.analyzing_mode: str | None = None
        self._upload_generation = 0
        self._pdf_jobs = 0

    @property
    def is_processing_pdf(self) -> bool:
        return self._pdf_jobs > 0

    def _begin_pdf_job(self) -> None:
        self._pdf_jobs += 1
        self._notify()

    def _end_pdf_job(self) -> None:
        self._pdf_jobs -= 1

    # =====================================================
    # ARTIFACT MANAGEMENT
    # =====================================================

    def set_prompt(self, prompt: str) -> None:
        self.prompt = prompt
        self._notify()

    def remove_artifact(self) -> None:
        """Drop the artifact and everything derived from it."""
        self._upload_generation += 1
        self.uploaded_file = None
        self.selected_page = None
        self.analysis_result = ""
        self.error = None
        self._notify()

    async def submit_artifact(self, name: str, mime_type: str, data: bytes) -> None:
        """Replace the active artifact with an uploaded file.

        Unsupported MIME types only set `error`; the current artifact is kept.
        PDFs are opened and thumbnailed before they become active, so a corrupt
        document leaves no artifact behind. When uploads overlap, the most
        recent submission wins regardless of which one finishes first.
        """
        try:
            kind = classify_mime_type(mime_type)
        except UnsupportedFileTypeError as err:
            logger.info("Rejected upload %r with MIME type %r", name, mime_type)
            self.error = str(err)
            self._notify()
            return

        self.remove_artifact()
        generation = self._upload_generation

        if kind == "image":
            self.uploaded_file = build_image_artifact(name, mime_type, data)
            self._notify()
            return

        self._begin_pdf_job()
        try:
            page_count, thumbnails = await asyncio.to_thread(self._load_pdf, data)
            if generation != self._upload_generation:
                logger.info("Discarding superseded PDF upload %r", name)
                return
            self.uploaded_file = PdfArtifact(
                data=data,
                name=name,
                page_count=page_count,
                page_thumbnails=tuple(thumbnails),
            )
        except PdfRenderError:
            logger.exception("Could not process PDF upload %r", name)
            if generation == self._upload_generation:
                self.error = PDF_PROCESSING_FAILED_MESSAGE
        finally:
            self._end_pdf_job()
            self._notify()

    def _load_pdf(self, data: bytes) -> tuple[int, list[str]]:
        page_count = count_pages(data)
        thumbnails = render_pdf_page_thumbnails(data, self.render_config.thumbnail_scale)
        return page_count, thumbnails

    async def select_page(self, page_number: int) -> None:
        """Render `page_number` (1-based) of the active PDF for single-page analysis.

        Edge cases:
            - No active PDF: no-op.
            - Out-of-range page: no state change, `error` names the page.
            - The artifact is replaced while rendering: the render is discarded.
        """
        artifact = self.uploaded_file
        if not isinstance(artifact, PdfArtifact):
            return

        if page_number < 1 or page_number > artifact.page_count:
            self.error = INVALID_PAGE_MESSAGE.format(page_number=page_number)
            self._notify()
            return

        self.error = None
        self._begin_pdf_job()
        try:
            page_base64 = await asyncio.to_thread(
                render_page, artifact.data, page_number, self.render_config.page_scale
            )
            if self.uploaded_file is artifact:
                self.selected_page = SelectedPage(
                    page_number=page_number,
                    base64=page_base64,
                    data_url=to_data_url(page_base64),
                )
        except PdfRenderError:
            logger.exception("Could not render page %d of %r", page_number, artifact.name)
            if self.uploaded_file is artifact:
                self.error = PAGE_RENDER_FAILED_MESSAGE.format(page_number=page_number)
        finally:
            self._end_pdf_job()
            self._notify()

    # =====================================================
    # ANALYSIS
    # =====================================================

    def _single_image(self) -> ImagePayload | None:
        """Return the one image to analyze, or `None` when there is none yet."""
        artifact = self.uploaded_file
        if isinstance(artifact, ImageArtifact):
            return ImagePayload(base64=artifact.base64, mime_type=artifact.mime_type)
        if isinstance(artifact, PdfArtifact) and self.selected_page is not None:
            return ImagePayload(base64=self.selected_page.base64, mime_type=JPEG_MIME_TYPE)
        return None

    def _fail_fast(self, message: str) -> None:
        self.error = message
        self._notify()

    async def analyze(self, single_page_only: bool = True) -> None:
        """Analyze the artifact; see the module docstring for the lifecycle.

        Args:
            single_page_only: `False` requests whole-document analysis of a PDF.
                Image artifacts are always analyzed as one image.
        """
        if self.is_loading:
            return

        artifact = self.uploaded_file
        prompt = self.prompt
        if artifact is None or not prompt or not prompt.strip():
            self._fail_fast(MISSING_INPUT_MESSAGE)
            return

        analyze_all = not single_page_only and isinstance(artifact, PdfArtifact)
        image = None
        if analyze_all:
            if not self.multi_page_enabled:
                self._fail_fast(MULTI_PAGE_DISABLED_MESSAGE)
                return
        else:
            image = self._single_image()
            if image is None:
                self._fail_fast(SELECT_PAGE_MESSAGE)
                return

        self.is_loading = True
        self.error = None
        self.analysis_result = ""
        self.analyzing_mode = MODE_ALL if analyze_all else MODE_PAGE
        self._notify()

        result = ""
        error = None
        try:
            if analyze_all:
                result = await self._analyze_document(artifact, prompt)
            else:
                result = await asyncio.to_thread(
                    self._analyze_single, prompt, image.base64, image.mime_type
                )
        except PdfRenderError:
            logger.exception("Could not render %r for analysis", artifact.name)
            error = PDF_PROCESSING_FAILED_MESSAGE
        except (BackendError, ValueError) as err:
            logger.warning("Blueprint analysis failed: %s", err)
            error = ANALYSIS_FAILED_MESSAGE.format(message=str(err))
        finally:
            if self.uploaded_file is artifact:
                self.analysis_result = result
                self.error = error
            else:
                logger.info("Discarding analysis of replaced artifact %r", artifact.name)
            self.is_loading = False
            self.analyzing_mode = None
            self._notify()

    async def _analyze_document(self, artifact: PdfArtifact, prompt: str) -> str:
        """Render every page, then submit them with the multi-page instruction."""
        self._begin_pdf_job()
        try:
            pages = await asyncio.to_thread(
                render_all_pages, artifact.data, self.render_config.document_page_scale
            )
        finally:
            self._end_pdf_job()
            self._notify()

        images = [ImagePayload(base64=page, mime_type=JPEG_MIME_TYPE) for page in pages]
        return await asyncio.to_thread(
            self._analyze_multi, build_multi_page_prompt(prompt), images
        )

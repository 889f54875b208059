import asyncio
import base64
import threading

import pytest

from arquia.blueprint.analyzer import (
    ANALYSIS_FAILED_MESSAGE,
    BlueprintAnalyzer,
    MISSING_INPUT_MESSAGE,
    MODE_ALL,
    MODE_PAGE,
    PAGE_RENDER_FAILED_MESSAGE,
    PDF_PROCESSING_FAILED_MESSAGE,
    SELECT_PAGE_MESSAGE,
)
from arquia.blueprint.artifacts import (
    ImageArtifact,
    PdfArtifact,
    UNSUPPORTED_FILE_MESSAGE,
)
from arquia.blueprint.pdf_renderer import PdfRenderError, RenderConfig
from arquia.llm.client import BackendError
from arquia.llm.service import MULTI_PAGE_DISABLED_MESSAGE
from arquia.prompting.prompt_builder import MULTI_PAGE_PREAMBLE


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


class FakeAdapter:
    def __init__(self, result="### Informe", error=None):
        self.result = result
        self.error = error
        self.single_calls = []
        self.multi_calls = []

    def single(self, prompt, image_base64, mime_type):
        self.single_calls.append((prompt, image_base64, mime_type))
        if self.error:
            raise self.error
        return self.result

    def multi(self, prompt, images):
        self.multi_calls.append((prompt, images))
        if self.error:
            raise self.error
        return self.result

    @property
    def call_count(self):
        return len(self.single_calls) + len(self.multi_calls)


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def analyzer(adapter):
    return BlueprintAnalyzer(
        analyze_single=adapter.single,
        analyze_multi=adapter.multi,
        render_config=RenderConfig(thumbnail_scale=0.25, page_scale=1.0, document_page_scale=0.5),
        multi_page_enabled=True,
    )


def _submit(analyzer, name, mime_type, data):
    asyncio.run(analyzer.submit_artifact(name, mime_type, data))


# =====================================================
# submit_artifact
# =====================================================

@pytest.mark.parametrize("mime_type", ["text/plain", "application/zip", "", None])
def test_unsupported_type_sets_one_error_and_no_artifact(analyzer, adapter, mime_type):
    errors = []
    analyzer.subscribe(lambda s: errors.append(s.error))

    _submit(analyzer, "notas.txt", mime_type, b"hola")

    assert analyzer.uploaded_file is None
    assert analyzer.error == UNSUPPORTED_FILE_MESSAGE
    assert errors == [UNSUPPORTED_FILE_MESSAGE]
    assert adapter.call_count == 0


def test_unsupported_type_keeps_existing_artifact(analyzer):
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)
    previous = analyzer.uploaded_file

    _submit(analyzer, "plano.dwg", "application/acad", b"...")

    assert analyzer.uploaded_file is previous


def test_image_upload_becomes_image_artifact(analyzer):
    analyzer.analysis_result = "viejo"
    analyzer.error = "viejo"

    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)

    assert analyzer.uploaded_file == ImageArtifact(
        base64=base64.b64encode(PNG_BYTES).decode("ascii"),
        mime_type="image/png",
        name="plano.png",
    )
    assert analyzer.analysis_result == ""
    assert analyzer.error is None


def test_pdf_upload_renders_thumbnails(analyzer, pdf_bytes):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)

    artifact = analyzer.uploaded_file
    assert isinstance(artifact, PdfArtifact)
    assert artifact.page_count == 3
    assert len(artifact.page_thumbnails) == 3
    assert artifact.name == "planos.pdf"
    assert analyzer.is_processing_pdf is False


def test_corrupt_pdf_leaves_no_artifact(analyzer):
    _submit(analyzer, "roto.pdf", "application/pdf", b"not a pdf at all")

    assert analyzer.uploaded_file is None
    assert analyzer.error == PDF_PROCESSING_FAILED_MESSAGE
    assert analyzer.is_processing_pdf is False


def test_new_artifact_clears_selection_and_result(analyzer, pdf_bytes):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)
    asyncio.run(analyzer.select_page(2))
    analyzer.analysis_result = "resultado anterior"

    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)

    assert analyzer.selected_page is None
    assert analyzer.analysis_result == ""


def test_remove_artifact(analyzer):
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)

    analyzer.remove_artifact()

    assert analyzer.uploaded_file is None
    assert analyzer.selected_page is None


# =====================================================
# select_page
# =====================================================

def test_select_page_sets_page_number(analyzer, pdf_bytes):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)

    asyncio.run(analyzer.select_page(2))

    assert analyzer.selected_page.page_number == 2
    assert analyzer.selected_page.data_url.endswith(analyzer.selected_page.base64)
    assert analyzer.error is None


@pytest.mark.parametrize("page_number", [0, 4, -2, 99])
def test_select_page_out_of_range_is_noop_naming_page(analyzer, pdf_bytes, page_number):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)
    asyncio.run(analyzer.select_page(1))
    previous = analyzer.selected_page

    asyncio.run(analyzer.select_page(page_number))

    assert analyzer.selected_page is previous
    assert str(page_number) in analyzer.error


def test_select_page_replaces_previous_selection(analyzer, pdf_bytes):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)

    asyncio.run(analyzer.select_page(1))
    asyncio.run(analyzer.select_page(3))

    assert analyzer.selected_page.page_number == 3


def test_select_page_on_image_is_noop(analyzer):
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)

    asyncio.run(analyzer.select_page(1))

    assert analyzer.selected_page is None


def test_select_page_render_failure_keeps_previous_selection(analyzer, pdf_bytes, monkeypatch):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)
    asyncio.run(analyzer.select_page(1))
    previous = analyzer.selected_page

    def broken_render(data, page_number, scale):
        raise PdfRenderError("boom")

    monkeypatch.setattr("arquia.blueprint.analyzer.render_page", broken_render)

    asyncio.run(analyzer.select_page(2))

    assert analyzer.selected_page is previous
    assert analyzer.error == PAGE_RENDER_FAILED_MESSAGE.format(page_number=2)
    assert analyzer.is_processing_pdf is False


def test_select_page_render_discarded_after_artifact_removed(analyzer, pdf_bytes, monkeypatch):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)
    started = threading.Event()
    release = threading.Event()

    def slow_render(data, page_number, scale):
        started.set()
        release.wait(timeout=5)
        return "QUJD"

    monkeypatch.setattr("arquia.blueprint.analyzer.render_page", slow_render)

    async def scenario():
        task = asyncio.create_task(analyzer.select_page(2))
        await asyncio.to_thread(started.wait, 5)
        analyzer.remove_artifact()
        release.set()
        await task

    asyncio.run(scenario())

    assert analyzer.uploaded_file is None
    assert analyzer.selected_page is None
    assert analyzer.is_processing_pdf is False


# =====================================================
# analyze
# =====================================================

def test_analyze_without_artifact_fails_fast(analyzer, adapter):
    asyncio.run(analyzer.analyze())

    assert analyzer.error == MISSING_INPUT_MESSAGE
    assert adapter.call_count == 0


def test_analyze_without_instruction_fails_fast(analyzer, adapter):
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)
    analyzer.set_prompt("   ")

    asyncio.run(analyzer.analyze())

    assert analyzer.error == MISSING_INPUT_MESSAGE
    assert adapter.call_count == 0


def test_single_page_pdf_analysis_requires_selection(analyzer, adapter, pdf_bytes):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)

    asyncio.run(analyzer.analyze(single_page_only=True))

    assert analyzer.error == SELECT_PAGE_MESSAGE
    assert adapter.call_count == 0
    assert analyzer.is_loading is False


def test_analyze_image_submits_one_image(analyzer, adapter):
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)
    analyzer.set_prompt("Revisa la estructura")
    modes = []
    analyzer.subscribe(lambda s: modes.append(s.analyzing_mode))

    asyncio.run(analyzer.analyze())

    assert adapter.single_calls == [
        ("Revisa la estructura", base64.b64encode(PNG_BYTES).decode("ascii"), "image/png"),
    ]
    assert analyzer.analysis_result == "### Informe"
    assert MODE_PAGE in modes
    assert analyzer.analyzing_mode is None
    assert analyzer.is_loading is False


def test_image_with_whole_document_request_is_single_image(analyzer, adapter):
    _submit(analyzer, "plano.jpg", "image/jpeg", b"\xff\xd8\xff")

    asyncio.run(analyzer.analyze(single_page_only=False))

    assert len(adapter.single_calls) == 1
    assert adapter.multi_calls == []


def test_analyze_selected_pdf_page(analyzer, adapter, pdf_bytes):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)
    asyncio.run(analyzer.select_page(2))

    asyncio.run(analyzer.analyze(single_page_only=True))

    prompt, image_base64, mime_type = adapter.single_calls[0]
    assert image_base64 == analyzer.selected_page.base64
    assert mime_type == "image/jpeg"


def test_whole_document_analysis_sends_every_page(analyzer, adapter, pdf_bytes):
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)
    analyzer.set_prompt("Revisa")
    modes = []
    analyzer.subscribe(lambda s: modes.append(s.analyzing_mode))

    asyncio.run(analyzer.analyze(single_page_only=False))

    prompt, images = adapter.multi_calls[0]
    assert prompt.startswith(MULTI_PAGE_PREAMBLE)
    assert prompt.endswith("Revisa")
    assert len(images) == 3
    assert all(image.mime_type == "image/jpeg" for image in images)
    assert adapter.single_calls == []
    assert MODE_ALL in modes
    assert analyzer.analysis_result == "### Informe"
    assert analyzer.is_processing_pdf is False


def test_whole_document_analysis_can_be_disabled(analyzer, adapter, pdf_bytes):
    analyzer.multi_page_enabled = False
    _submit(analyzer, "planos.pdf", "application/pdf", pdf_bytes)

    asyncio.run(analyzer.analyze(single_page_only=False))

    assert analyzer.error == MULTI_PAGE_DISABLED_MESSAGE
    assert adapter.call_count == 0


def test_backend_failure_is_displayed_and_flags_reset(adapter, analyzer):
    adapter.error = BackendError("Cuota excedida")
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)

    asyncio.run(analyzer.analyze())

    assert analyzer.error == ANALYSIS_FAILED_MESSAGE.format(message="Cuota excedida")
    assert analyzer.analysis_result == ""
    assert analyzer.is_loading is False
    assert analyzer.analyzing_mode is None
    assert analyzer.uploaded_file is not None


def test_new_analysis_replaces_previous_result(adapter, analyzer):
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)
    asyncio.run(analyzer.analyze())
    adapter.result = "### Segundo informe"

    asyncio.run(analyzer.analyze())

    assert analyzer.analysis_result == "### Segundo informe"


def test_analysis_of_replaced_artifact_is_discarded(analyzer):
    started = threading.Event()
    release = threading.Event()

    def slow_single(prompt, image_base64, mime_type):
        started.set()
        release.wait(timeout=5)
        return "informe del plano viejo"

    analyzer._analyze_single = slow_single
    _submit(analyzer, "viejo.png", "image/png", PNG_BYTES)

    async def scenario():
        task = asyncio.create_task(analyzer.analyze())
        await asyncio.to_thread(started.wait, 5)
        await analyzer.submit_artifact("nuevo.png", "image/png", b"\x89PNG\r\n\x1a\nnuevo")
        release.set()
        await task

    asyncio.run(scenario())

    assert analyzer.uploaded_file.name == "nuevo.png"
    assert analyzer.analysis_result == ""
    assert analyzer.error is None
    assert analyzer.is_loading is False


def test_analysis_failure_after_removal_leaves_no_error(analyzer):
    started = threading.Event()
    release = threading.Event()

    def failing_single(prompt, image_base64, mime_type):
        started.set()
        release.wait(timeout=5)
        raise BackendError("Cuota excedida")

    analyzer._analyze_single = failing_single
    _submit(analyzer, "plano.png", "image/png", PNG_BYTES)

    async def scenario():
        task = asyncio.create_task(analyzer.analyze())
        await asyncio.to_thread(started.wait, 5)
        analyzer.remove_artifact()
        release.set()
        await task

    asyncio.run(scenario())

    assert analyzer.uploaded_file is None
    assert analyzer.error is None


def test_latest_pdf_upload_wins_when_uploads_overlap(analyzer):
    first_started = threading.Event()
    release_first = threading.Event()

    def load_pdf(data):
        if data == b"primero":
            first_started.set()
            release_first.wait(timeout=5)
            return 40, ["data:image/jpeg;base64,AA"] * 40
        return 1, ["data:image/jpeg;base64,BB"]

    analyzer._load_pdf = load_pdf
    processing = []

    async def scenario():
        first = asyncio.create_task(
            analyzer.submit_artifact("primero.pdf", "application/pdf", b"primero")
        )
        await asyncio.to_thread(first_started.wait, 5)
        await analyzer.submit_artifact("segundo.pdf", "application/pdf", b"segundo")
        processing.append(analyzer.is_processing_pdf)
        release_first.set()
        await first

    asyncio.run(scenario())

    assert analyzer.uploaded_file.name == "segundo.pdf"
    assert analyzer.uploaded_file.page_count == 1
    assert processing == [True]
    assert analyzer.is_processing_pdf is False

"""Uploaded artifact types and MIME classification.

An uploaded blueprint is either an `ImageArtifact` or a `PdfArtifact`; callers
match on the concrete class. `SelectedPage` only ever refers to a page of the
currently active `PdfArtifact`.
"""

import base64
from dataclasses import dataclass, field


PDF_MIME_TYPE = "application/pdf"

UNSUPPORTED_FILE_MESSAGE = (
    "Tipo de archivo no válido. Por favor, sube una imagen (PNG, JPEG, WEBP) o un PDF."
)


class UnsupportedFileTypeError(ValueError):
    """Raised for uploads that are neither `image/*` nor `application/pdf`."""


@dataclass(frozen=True)
class ImageArtifact:
    """Flat blueprint image, kept as raw base64 for direct submission."""

    base64: str
    mime_type: str
    name: str


@dataclass(frozen=True)
class PdfArtifact:
    """Multi-page blueprint document with pre-rendered page thumbnails."""

    data: bytes = field(repr=False)
    name: str
    page_count: int
    page_thumbnails: tuple[str, ...] = ()


UploadedArtifact = ImageArtifact | PdfArtifact


@dataclass(frozen=True)
class SelectedPage:
    """Page chosen for single-page analysis, rendered at submission fidelity."""

    page_number: int
    base64: str = field(repr=False)
    data_url: str = field(repr=False)


def classify_mime_type(mime_type: str | None) -> str:
    """Return `"image"` or `"pdf"` for a supported MIME type.

    Raises:
        UnsupportedFileTypeError: any other (or missing) MIME type.
    """
    normalized = (mime_type or "").strip().lower()
    if normalized.startswith("image/"):
        return "image"
    if normalized == PDF_MIME_TYPE:
        return "pdf"
    raise UnsupportedFileTypeError(UNSUPPORTED_FILE_MESSAGE)


def build_image_artifact(name: str, mime_type: str, data: bytes) -> ImageArtifact:
    """Encode raw image bytes as an `ImageArtifact`."""
    return ImageArtifact(
        base64=base64.b64encode(data).decode("ascii"),
        mime_type=mime_type.strip().lower(),
        name=name,
    )

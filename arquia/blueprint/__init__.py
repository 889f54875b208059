"""Blueprint submission package.

Architectural role:
- Classifies uploaded files into image or PDF artifacts.
- Renders PDF pages to JPEG images (thumbnails, selected page, whole document).
- Holds the analyzer state and submits analysis requests through `arquia.llm`.

Scope:
- Upload preprocessing and analysis orchestration only; no HTTP endpoints and no
  export of the analysis result.
"""

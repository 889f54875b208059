"""Concept image generation package.

Scope:
    Provides the text-to-image transport (proxy route or Imagen), the operation
    adapter, and the concept generator state holder.

Non-goals:
    - No uploaded-file processing (see `arquia.blueprint`).
    - No image persistence; results are returned as data URLs or proxy references.
"""

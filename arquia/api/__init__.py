"""Arqui-IA API adapter package.

Architectural role:
- Defines the backend proxy that fronts the AI provider for browser clients.
- Performs transport-level validation and response shaping.
- Delegates provider calls to `arquia.llm` and `arquia.image` in direct mode.
"""

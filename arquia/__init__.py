"""Arqui-IA: AI assistant for architects.

Architectural role:
    Groups the state holders (blueprint analyzer, chat session, concept
    generator), the request adapter that talks to the AI backend, and the
    FastAPI proxy that fronts the provider.
"""

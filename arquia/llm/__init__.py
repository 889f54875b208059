"""LLM access package.

Architectural role:
    Provides backend configuration, operation-level request builders, and the
    transport adapters used by the state holders to reach the AI service.

Module split:
    - `provider_config`: environment-driven transport and model configuration.
    - `service`: canonical operation adapter (analysis, chat backends).
    - `client`: proxy/provider HTTP transport and response normalization.
"""

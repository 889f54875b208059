"""Core state package.

Architectural role:
    Exposes the subscribe/notify contract shared by the state holders
    (`BlueprintAnalyzer`, `ChatSession`, `ConceptGenerator`).

Determinism and side effects:
    Package import itself is deterministic and side-effect free.
"""

"""Conversation memory package.

Architectural role:
    Holds the in-process chat transcript (`conversation_manager.ChatSession`).
    Nothing is persisted: a session lives exactly as long as its owner.
"""

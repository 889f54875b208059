"""Chat session transcript and send state machine.

Purpose of this abstraction:
    Maintain the ordered conversation shown to the user and the history that is
    resubmitted to the chat backend on every turn. There is no server-side
    session: the full history travels with each message.

State machine (per `send_message`):
    IDLE -> SENDING -> COMPLETE -> IDLE
    IDLE -> SENDING -> FAILED   -> IDLE

Transcript vs. submitted history:
    - `turns` is what the user sees: the greeting, every user message and every
      model reply (including the apology text of failed exchanges).
    - `history` only contains exchanges that completed successfully, in the
      provider's `{"role", "parts": [{"text"}]}` shape.

Concurrency:
    A send issued while another is in flight is ignored, not queued.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass

from arquia.core.state import Observable
from arquia.llm.service import ChatBackend, get_chat_backend
from arquia.prompting.prompt_builder import CHAT_GREETING


logger = logging.getLogger(__name__)

CHAT_ERROR_MESSAGE = "Lo siento, encontré un error. Por favor, inténtalo de nuevo."

ROLE_USER = "user"
ROLE_MODEL = "model"


class ChatState(enum.Enum):
    """Lifecycle of one `send_message` call."""

    IDLE = "idle"
    SENDING = "sending"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class ConversationTurn:
    """One transcript entry. Only the pending model turn's text is ever reassigned."""

    role: str
    text: str

    def to_history_entry(self) -> dict:
        return {"role": self.role, "parts": [{"text": self.text}]}


class ChatSession(Observable):
    """Single-response chat session over a `ChatBackend`."""

    def __init__(self, backend: ChatBackend | None = None, greeting: str = CHAT_GREETING) -> None:
        super().__init__()
        self.backend = backend or get_chat_backend()
        self.turns: list[ConversationTurn] = []
        if greeting:
            self.turns.append(ConversationTurn(ROLE_MODEL, greeting))
        self._history: list[ConversationTurn] = []
        self.state = ChatState.IDLE

    @property
    def is_loading(self) -> bool:
        return self.state is ChatState.SENDING

    @property
    def history(self) -> list[dict]:
        """Submitted history in the backend wire shape (a fresh list each call)."""
        return [turn.to_history_entry() for turn in self._history]

    def _set_state(self, state: ChatState) -> None:
        self.state = state
        self._notify()

    async def send_message(self, message: str) -> None:
        """Send one user message and fill the pending model turn with the reply.

        Edge cases:
            - Blank messages and sends while `SENDING` are no-ops.
            - On backend failure the pending turn shows `CHAT_ERROR_MESSAGE`; the
              failed exchange is not added to the submitted history.
        """
        text = (message or "").strip()
        if not text or self.state is ChatState.SENDING:
            return

        history = self.history
        self.turns.append(ConversationTurn(ROLE_USER, text))
        pending = ConversationTurn(ROLE_MODEL, "")
        self.turns.append(pending)
        self._set_state(ChatState.SENDING)

        try:
            reply = await asyncio.to_thread(self.backend.send, text, history)
        except Exception:
            logger.exception("Chat backend call failed")
            pending.text = CHAT_ERROR_MESSAGE
            self._set_state(ChatState.FAILED)
        else:
            pending.text = reply
            self._history.append(ConversationTurn(ROLE_USER, text))
            self._history.append(ConversationTurn(ROLE_MODEL, reply))
            self._set_state(ChatState.COMPLETE)
        finally:
            self._set_state(ChatState.IDLE)

"""Typed-word confirmation gate guarding destructive bulk actions."""

import enum


class GateState(str, enum.Enum):
    idle = "idle"
    awaiting_confirmation_text = "awaiting_confirmation_text"
    confirmed = "confirmed"


class ConfirmationGate:
    """Idle → AwaitingConfirmationText → Confirmed.

    The gate opens once eligibility is known and the typed text matches the
    confirmation word, ignoring case.
    """

    def __init__(self, word: str):
        self.word = word
        self.text = ""
        self.state = GateState.idle

    def matches(self, text: str) -> bool:
        return (text or "").upper() == self.word.upper()

    def arm(self) -> None:
        """Eligibility is known; start waiting for the typed word."""
        self.state = GateState.awaiting_confirmation_text
        self.enter(self.text)

    def enter(self, text: str) -> GateState:
        self.text = text or ""
        if self.state == GateState.idle:
            return self.state
        self.state = (
            GateState.confirmed if self.matches(self.text) else GateState.awaiting_confirmation_text
        )
        return self.state

    def can_confirm(self, has_action: bool, processing: bool = False) -> bool:
        return self.state == GateState.confirmed and has_action and not processing

    def reset(self) -> None:
        self.text = ""
        self.state = GateState.idle

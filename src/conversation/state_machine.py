"""
Finite state machine for the multi-turn booking dialog.

Every conversation is either empty, walking through the provider/time
selection flow, or holding a single action that awaits a yes/no answer.
Transitions are listed explicitly so the orchestrator stays deterministic
regardless of what the intent classifier produces.

Usage:
    sm = DialogStateMachine()
    sm.transition(DialogTrigger.PROVIDERS_FOUND)
    assert sm.current_state == DialogState.PROVIDERS_LISTED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class DialogState(str, Enum):
    """All possible states of one conversation."""
    EMPTY = "empty"
    PROVIDERS_LISTED = "providers_listed"
    PROVIDER_SELECTED = "provider_selected"
    TIME_SELECTED = "time_selected"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


class DialogTrigger(str, Enum):
    """Events that cause state transitions."""
    PROVIDERS_FOUND = "providers_found"
    ACTION_PROPOSED = "action_proposed"
    PROVIDER_RESOLVED = "provider_resolved"
    TIME_RESOLVED = "time_resolved"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_FAILED = "booking_failed"
    ACTION_CONFIRMED = "action_confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: DialogState
    to_state: DialogState
    trigger: DialogTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: DialogState
    entered_at: datetime
    trigger: Optional[DialogTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


_ACTIVE_STATES = [
    DialogState.PROVIDERS_LISTED,
    DialogState.PROVIDER_SELECTED,
    DialogState.TIME_SELECTED,
    DialogState.AWAITING_CONFIRMATION,
]


class DialogStateMachine:
    """
    Deterministic state machine for one conversation.

    Resolution failures (unknown provider, unusable time) are not
    transitions; the orchestrator re-prompts and leaves the state alone.
    """

    TRANSITIONS: list[Transition] = [
        # --- Opening a conversation ---
        Transition(DialogState.EMPTY, DialogState.PROVIDERS_LISTED,
                   DialogTrigger.PROVIDERS_FOUND),
        Transition(DialogState.EMPTY, DialogState.AWAITING_CONFIRMATION,
                   DialogTrigger.ACTION_PROPOSED),

        # --- Selection flow ---
        Transition(DialogState.PROVIDERS_LISTED, DialogState.PROVIDER_SELECTED,
                   DialogTrigger.PROVIDER_RESOLVED),
        Transition(DialogState.PROVIDER_SELECTED, DialogState.TIME_SELECTED,
                   DialogTrigger.TIME_RESOLVED),
        Transition(DialogState.TIME_SELECTED, DialogState.TIME_SELECTED,
                   DialogTrigger.TIME_RESOLVED),

        # --- Confirmation ---
        Transition(DialogState.TIME_SELECTED, DialogState.EMPTY,
                   DialogTrigger.BOOKING_CONFIRMED),
        Transition(DialogState.TIME_SELECTED, DialogState.TIME_SELECTED,
                   DialogTrigger.BOOKING_FAILED),
        Transition(DialogState.AWAITING_CONFIRMATION, DialogState.EMPTY,
                   DialogTrigger.ACTION_CONFIRMED),

        # --- Teardown from any active state ---
        *[Transition(s, DialogState.EMPTY, DialogTrigger.CANCELLED) for s in _ACTIVE_STATES],
        *[Transition(s, DialogState.EMPTY, DialogTrigger.EXPIRED) for s in _ACTIVE_STATES],
    ]

    def __init__(self) -> None:
        self._current_state = DialogState.EMPTY
        self._history: list[StateEntry] = [
            StateEntry(state=DialogState.EMPTY, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> DialogState:
        return self._current_state

    def transition(self, trigger: DialogTrigger) -> DialogState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new dialog state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state

                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))

                logger.debug(
                    "Dialog transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def can_transition(self, trigger: DialogTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def get_valid_triggers(self) -> list[DialogTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_closed(self) -> bool:
        """A conversation that returned to EMPTY after opening is finished."""
        return self._current_state == DialogState.EMPTY and len(self._history) > 1

"""
Per-device state machine for a print session.

States:
    IDLE: Target selected, nothing attempted yet
    CONNECTING: Opening the transport connection
    RENDERING: Producing the payload for one copy
    CUTTING: Queueing the paper cut for that copy
    SENDING: Flushing the copy to the device
    DISCONNECTED: All copies sent, connection closed
    FAILED: Terminal error state, reason kept on the machine
"""

from enum import Enum, auto
from typing import Callable
import logging

logger = logging.getLogger(__name__)


class DeviceState(Enum):
    """Print session states for one device."""
    IDLE = auto()
    CONNECTING = auto()
    RENDERING = auto()
    CUTTING = auto()
    SENDING = auto()
    DISCONNECTED = auto()
    FAILED = auto()


TERMINAL_STATES = frozenset({DeviceState.DISCONNECTED, DeviceState.FAILED})


class InvalidTransition(RuntimeError):
    """Raised when the orchestrator drives a device out of order."""


class DeviceStateMachine:
    """
    Tracks one device through connect, render, cut, send and disconnect.

    Any non-terminal state may move to FAILED. SENDING loops back to
    RENDERING for the next copy.
    """

    VALID_TRANSITIONS: list[tuple[DeviceState, DeviceState]] = [
        (DeviceState.IDLE, DeviceState.CONNECTING),
        (DeviceState.CONNECTING, DeviceState.RENDERING),
        (DeviceState.RENDERING, DeviceState.CUTTING),
        (DeviceState.CUTTING, DeviceState.SENDING),

        # Next copy
        (DeviceState.SENDING, DeviceState.RENDERING),

        (DeviceState.SENDING, DeviceState.DISCONNECTED),
    ]

    def __init__(self, device: str) -> None:
        self.device = device
        self._state = DeviceState.IDLE
        self._reason: str | None = None
        self._history: list[DeviceState] = [DeviceState.IDLE]
        self._listeners: list[Callable[[str, DeviceState, DeviceState], None]] = []
        self._valid_transitions = set(self.VALID_TRANSITIONS)

    @property
    def state(self) -> DeviceState:
        """Get current state."""
        return self._state

    @property
    def reason(self) -> str | None:
        """Failure reason when in FAILED."""
        return self._reason

    @property
    def history(self) -> list[DeviceState]:
        """Every state visited, in order."""
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def on_change(self, callback: Callable[[str, DeviceState, DeviceState], None]) -> None:
        """Register a listener called as (device, old_state, new_state)."""
        self._listeners.append(callback)

    def can_transition(self, to_state: DeviceState) -> bool:
        """Check if transition to given state is valid."""
        if to_state == DeviceState.FAILED:
            return not self.is_terminal
        return (self._state, to_state) in self._valid_transitions

    def transition(self, to_state: DeviceState) -> None:
        """Move to a new state, raising InvalidTransition when out of order."""
        if not self.can_transition(to_state):
            raise InvalidTransition(
                f"{self.device}: invalid transition {self._state.name} -> {to_state.name}"
            )
        self._set(to_state)

    def fail(self, reason: str) -> None:
        """Move to FAILED from any non-terminal state."""
        if self.is_terminal:
            logger.debug(f"{self.device}: ignoring failure in terminal state {self._state.name}")
            return
        self._reason = reason
        self._set(DeviceState.FAILED)

    def _set(self, to_state: DeviceState) -> None:
        old_state = self._state
        self._state = to_state
        self._history.append(to_state)
        logger.debug(f"{self.device}: {old_state.name} -> {to_state.name}")

        for listener in self._listeners:
            try:
                listener(self.device, old_state, to_state)
            except Exception as e:
                logger.error(f"State listener error: {e}")

"""Phase tracking for a scan session."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from storage_freer.types.models import ScanPhase


class StateTransitionError(Exception):
    """Exception raised when state transition fails."""

    def __init__(
        self,
        message: str,
        from_state: ScanPhase | None = None,
        to_state: ScanPhase | None = None,
    ) -> None:
        """Initialize state transition error.

        Args:
            message: Error message
            from_state: Source state of failed transition
            to_state: Target state of failed transition
        """
        super().__init__(message)
        self.from_state: ScanPhase | None = from_state
        self.to_state: ScanPhase | None = to_state


@dataclass
class StateContext:
    """Current and previous phase plus the transition history."""

    current_state: ScanPhase
    previous_state: ScanPhase | None = None
    _state_history: list[ScanPhase] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._state_history.append(self.current_state)

    def set_current_state(self, state: ScanPhase) -> None:
        self.previous_state = self.current_state
        self.current_state = state
        self._state_history.append(state)

    def get_state_history(self) -> list[ScanPhase]:
        """Get the complete state transition history.

        Returns:
            List of states in chronological order
        """
        return self._state_history.copy()


# IDLE -> SCANNING -> READY, READY -> SCANNING on rescan, SCANNING -> SCANNING on restart
ALLOWED_TRANSITIONS: frozenset[tuple[ScanPhase, ScanPhase]] = frozenset(
    {
        (ScanPhase.IDLE, ScanPhase.SCANNING),
        (ScanPhase.SCANNING, ScanPhase.SCANNING),
        (ScanPhase.SCANNING, ScanPhase.READY),
        (ScanPhase.READY, ScanPhase.SCANNING),
    }
)


class ScanStateMachine:
    """Thread-safe phase machine for a scan session."""

    def __init__(self, initial_state: ScanPhase = ScanPhase.IDLE) -> None:
        """Initialize state machine.

        Args:
            initial_state: Initial phase of the machine
        """
        self.context: StateContext = StateContext(current_state=initial_state)
        self._state_lock: threading.RLock = threading.RLock()

    @property
    def current_state(self) -> ScanPhase:
        with self._state_lock:
            return self.context.current_state

    def can_transition_to(self, to_state: ScanPhase) -> bool:
        with self._state_lock:
            return (self.context.current_state, to_state) in ALLOWED_TRANSITIONS

    def transition_to(self, to_state: ScanPhase) -> ScanPhase:
        """Transition to the specified phase.

        Args:
            to_state: Target phase

        Returns:
            The phase that was left

        Raises:
            StateTransitionError: If transition is not allowed
        """
        with self._state_lock:
            current_state = self.context.current_state
            if not self.can_transition_to(to_state):
                raise StateTransitionError(
                    f"Cannot transition from {current_state.name} to {to_state.name}",
                    from_state=current_state,
                    to_state=to_state,
                )
            self.context.set_current_state(to_state)
            return current_state

    def get_state_history(self) -> list[ScanPhase]:
        with self._state_lock:
            return self.context.get_state_history()

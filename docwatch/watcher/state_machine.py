"""Build cycle state machine implementation."""

from enum import Enum, auto
from typing import ClassVar

import structlog

from docwatch.config.constants import COMPONENT_BUILDER


logger = structlog.get_logger()


class BuildState(Enum):
    """States of one read-render-write cycle.

    State transitions:
        PENDING -> READING: Begin reading the source
        READING -> RENDERING: Source read, begin rendering
        RENDERING -> WRITING: Page rendered, begin publishing
        WRITING -> DONE: Page published
        PENDING/READING/RENDERING/WRITING -> FAILED: Cycle failed
    """

    PENDING = auto()
    READING = auto()
    RENDERING = auto()
    WRITING = auto()
    DONE = auto()
    FAILED = auto()


class BuildStateError(Exception):
    """Raised when an invalid build state transition is attempted."""

    def __init__(self, from_state: BuildState, to_state: BuildState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid build state transition: {from_state.name} -> {to_state.name}"
        )


class BuildStateMachine:
    """State machine for one build cycle of one document.

    Enforces valid state transitions and logs invariant violations.
    """

    VALID_TRANSITIONS: ClassVar[dict[BuildState, set[BuildState]]] = {
        BuildState.PENDING: {BuildState.READING, BuildState.FAILED},
        BuildState.READING: {BuildState.RENDERING, BuildState.FAILED},
        BuildState.RENDERING: {BuildState.WRITING, BuildState.FAILED},
        BuildState.WRITING: {BuildState.DONE, BuildState.FAILED},
        BuildState.DONE: set(),  # Terminal state
        BuildState.FAILED: set(),  # Terminal state
    }

    def __init__(self, source: str) -> None:
        """Initialize the state machine in PENDING state.

        Args:
            source: Source file name for logging.
        """
        self._source = source
        self._state = BuildState.PENDING
        self._log = logger.bind(source=source, component=COMPONENT_BUILDER)

    @property
    def state(self) -> BuildState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: BuildState) -> bool:
        """Check if a transition to the given state is valid."""
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: BuildState) -> None:
        """Transition to a new state.

        Args:
            to_state: The target state.

        Raises:
            BuildStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise BuildStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.debug(
            "build_state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

    def to_reading(self) -> None:
        """Transition to READING state."""
        self.transition(BuildState.READING)

    def to_rendering(self) -> None:
        """Transition to RENDERING state."""
        self.transition(BuildState.RENDERING)

    def to_writing(self) -> None:
        """Transition to WRITING state."""
        self.transition(BuildState.WRITING)

    def to_done(self) -> None:
        """Transition to DONE state."""
        self.transition(BuildState.DONE)

    def to_failed(self) -> None:
        """Transition to FAILED state."""
        self.transition(BuildState.FAILED)

    def is_terminal(self) -> bool:
        """Check if the current state is terminal."""
        return self._state in (BuildState.DONE, BuildState.FAILED)

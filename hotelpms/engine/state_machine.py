"""
hotelpms/engine/state_machine.py

Finite state machine - declared transitions with trigger lookup and
terminal-state detection.
"""
from typing import Dict, List, Optional
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateTransition:
    """
    Transition definition

    Attributes:
        from_state: source state
        to_state: target state
        trigger: action name
    """

    from_state: str
    to_state: str
    trigger: str


@dataclass
class StateMachineConfig:
    """
    State machine definition

    Attributes:
        name: machine name (used in log lines)
        states: every state
        transitions: allowed transitions
        initial_state: state before the first transition
    """

    name: str
    states: List[str]
    transitions: List[StateTransition]
    initial_state: str
    _transition_map: Dict[str, Dict[str, StateTransition]] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self):
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"{self.name}: transition {t} references an unknown state")
            self._transition_map.setdefault(t.from_state, {})[t.trigger] = t

    def transition_for(self, state: str, trigger: str) -> Optional[StateTransition]:
        return self._transition_map.get(state, {}).get(trigger)

    def is_terminal(self, state: str) -> bool:
        """A state with no outgoing transitions"""
        return not self._transition_map.get(state)

    def triggers_from(self, state: str) -> List[str]:
        return list(self._transition_map.get(state, {}))


class StateMachine:
    """
    One entity's position in a StateMachineConfig.

    Example:
        >>> machine = StateMachine(ADMISSION_MACHINE, current_state="pending")
        >>> machine.can_fire("approve")
        True
        >>> machine.fire("approve")
        'approved'
    """

    def __init__(self, config: StateMachineConfig, current_state: Optional[str] = None):
        self._config = config
        self._current_state = current_state if current_state is not None else config.initial_state
        if self._current_state not in config.states:
            raise ValueError(f"{config.name}: unknown state {self._current_state}")

    @property
    def current_state(self) -> str:
        return self._current_state

    @property
    def config(self) -> StateMachineConfig:
        return self._config

    @property
    def is_terminal(self) -> bool:
        return self._config.is_terminal(self._current_state)

    def can_fire(self, trigger: str) -> bool:
        return self._config.transition_for(self._current_state, trigger) is not None

    def target_of(self, trigger: str) -> Optional[str]:
        transition = self._config.transition_for(self._current_state, trigger)
        return transition.to_state if transition else None

    def fire(self, trigger: str) -> str:
        """
        Apply a transition

        Returns:
            the new state

        Raises:
            ValueError: the trigger is not allowed from the current state
        """
        transition = self._config.transition_for(self._current_state, trigger)
        if transition is None:
            logger.warning(
                f"{self._config.name}: invalid transition from {self._current_state} (trigger: {trigger})"
            )
            raise ValueError(
                f"Cannot {trigger} from state {self._current_state}"
            )
        previous = self._current_state
        self._current_state = transition.to_state
        logger.debug(f"{self._config.name}: {previous} -> {self._current_state} (trigger: {trigger})")
        return self._current_state


# ============== Admission ==============

NO_REQUEST = "no_request"
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

ADMISSION_MACHINE = StateMachineConfig(
    name="Admission",
    states=[NO_REQUEST, PENDING, APPROVED, REJECTED],
    transitions=[
        StateTransition(NO_REQUEST, PENDING, "request"),
        StateTransition(PENDING, APPROVED, "approve"),
        StateTransition(PENDING, REJECTED, "reject"),
    ],
    initial_state=NO_REQUEST,
)


__all__ = [
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
    "ADMISSION_MACHINE",
    "NO_REQUEST",
    "PENDING",
    "APPROVED",
    "REJECTED",
]

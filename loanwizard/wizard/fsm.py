"""Finite state machine for wizard step progression.

The FSM validates transitions against the transition table and emits
step-change events. Whether a gated action may fire is decided by the
wizard before it calls ``transition``.
"""

from __future__ import annotations

import logging
import uuid

from loanwizard.events import emit
from loanwizard.models.enums import WizardAction, WizardStep
from loanwizard.schemas.events import EventType, SystemEvent
from loanwizard.wizard.states import TRANSITIONS

logger = logging.getLogger(__name__)


class WizardFSM:
    """Tracks the step of a single wizard instance."""

    def __init__(
        self,
        wizard_id: uuid.UUID,
        initial_step: WizardStep = WizardStep.PERSONAL,
    ) -> None:
        self.wizard_id = wizard_id
        self.current_step = initial_step

    def can_transition(self, action: WizardAction) -> bool:
        """Check if an action is valid from the current step."""
        return action in TRANSITIONS.get(self.current_step, {})

    def get_valid_actions(self) -> list[WizardAction]:
        return list(TRANSITIONS.get(self.current_step, {}).keys())

    def target(self, action: WizardAction) -> WizardStep | None:
        return TRANSITIONS.get(self.current_step, {}).get(action)

    async def transition(self, action: WizardAction) -> WizardStep:
        """Execute a transition.

        Raises:
            ValueError: If the action is not valid from the current step.
        """
        old_step = self.current_step
        step_transitions = TRANSITIONS.get(self.current_step, {})
        if action not in step_transitions:
            msg = (
                f"Invalid transition: {self.current_step.name} --{action.value}--> ??? "
                f"(valid: {[a.value for a in step_transitions]})"
            )
            raise ValueError(msg)
        self.current_step = step_transitions[action]

        logger.info(
            "Step transition: %s --%s--> %s (wizard=%s)",
            old_step.name,
            action.value,
            self.current_step.name,
            self.wizard_id,
        )

        await emit(SystemEvent(
            event_type=EventType.WIZARD_STEP_CHANGED,
            wizard_id=self.wizard_id,
            data={
                "from_step": int(old_step),
                "to_step": int(self.current_step),
                "action": action.value,
            },
            source_module="wizard.fsm",
        ))

        return self.current_step

    @property
    def position(self) -> int:
        """1-based step number (6 once submitted)."""
        return int(self.current_step)

    @property
    def is_terminal(self) -> bool:
        return len(TRANSITIONS.get(self.current_step, {})) == 0

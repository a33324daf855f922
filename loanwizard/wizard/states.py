"""Wizard step definitions and transition map.

Forward moves go one step at a time; back moves are always allowed except
from the first step; SUBMIT is only available on the documents step.
Guards (step validation, camera teardown) live in the wizard, not here.
"""

from __future__ import annotations

from loanwizard.models.enums import WizardAction, WizardStep

# Transition map: {current_step: {action: next_step}}
TRANSITIONS: dict[WizardStep, dict[WizardAction, WizardStep]] = {
    WizardStep.PERSONAL: {
        WizardAction.NEXT: WizardStep.ADDRESS,
    },
    WizardStep.ADDRESS: {
        WizardAction.NEXT: WizardStep.EMPLOYMENT,
        WizardAction.BACK: WizardStep.PERSONAL,
    },
    WizardStep.EMPLOYMENT: {
        WizardAction.NEXT: WizardStep.LOAN_DETAILS,
        WizardAction.BACK: WizardStep.ADDRESS,
    },
    WizardStep.LOAN_DETAILS: {
        WizardAction.NEXT: WizardStep.DOCUMENTS,
        WizardAction.BACK: WizardStep.EMPLOYMENT,
    },
    WizardStep.DOCUMENTS: {
        WizardAction.BACK: WizardStep.LOAN_DETAILS,
        WizardAction.SUBMIT: WizardStep.SUBMITTED,
    },
    WizardStep.SUBMITTED: {},
}

# Actions that need the current step to pass validation first
GATED_ACTIONS: frozenset[WizardAction] = frozenset({WizardAction.NEXT, WizardAction.SUBMIT})

STEP_TITLES: dict[WizardStep, str] = {
    WizardStep.PERSONAL: "Personal Info",
    WizardStep.ADDRESS: "Address",
    WizardStep.EMPLOYMENT: "Employment",
    WizardStep.LOAN_DETAILS: "Loan Details",
    WizardStep.DOCUMENTS: "Documents",
}

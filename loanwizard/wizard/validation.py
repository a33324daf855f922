"""Validation engine for the five wizard steps.

Synchronous and deterministic. Two modes:
    - real-time: re-check one field after it changes and merge the result
      into its step's ValidationState
    - step: re-check every rule of a step and replace its state wholesale

Canonical rules are fixed per step; steps 3-5 also require every required
dynamic field of the matching form section to be non-empty.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loanwizard.forms.field_types import handler_for, is_blank
from loanwizard.forms.resolver import FormSchema
from loanwizard.models.enums import AddressKind, FormSection, WizardStep
from loanwizard.schemas.draft import Address, ApplicationDraft
from loanwizard.schemas.forms import FieldDefinition, LoanProduct
from loanwizard.wizard.registry import DYNAMIC_KEY_PREFIX, SELFIE_KEY, address_key, dynamic_key

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PINCODE_RE = re.compile(r"^[0-9]{6}$")
NON_DIGIT_RE = re.compile(r"\D")

PHONE_DIGITS = 10
PAN_LENGTH = 10
AADHAR_LENGTH = 12

# Form sections validated on each step, in addition to the canonical rules.
STEP_SECTIONS: dict[WizardStep, FormSection] = {
    WizardStep.EMPLOYMENT: FormSection.EMPLOYMENT,
    WizardStep.LOAN_DETAILS: FormSection.LOAN_DETAILS,
    WizardStep.DOCUMENTS: FormSection.DOCUMENTS,
}
SECTION_STEPS: dict[FormSection, WizardStep] = {v: k for k, v in STEP_SECTIONS.items()}

ACTIVE_STEPS: tuple[WizardStep, ...] = (
    WizardStep.PERSONAL,
    WizardStep.ADDRESS,
    WizardStep.EMPLOYMENT,
    WizardStep.LOAN_DETAILS,
    WizardStep.DOCUMENTS,
)


@dataclass
class ValidationState:
    """Per-step field statuses. A key is never in both maps."""

    errors: dict[str, str] = field(default_factory=dict)
    validated: dict[str, bool] = field(default_factory=dict)

    def record(self, key: str, error: str | None) -> None:
        if error:
            self.errors[key] = error
            self.validated.pop(key, None)
        else:
            self.validated[key] = True
            self.errors.pop(key, None)

    def clear(self, key: str) -> None:
        self.errors.pop(key, None)
        self.validated.pop(key, None)

    def is_validated(self, key: str) -> bool:
        return self.validated.get(key, False)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


# ── Value helpers ────────────────────────────────────────────────────


def parse_number(value: Any) -> float | None:
    """Numeric value of form input, or None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def format_amount(value: float) -> str:
    """Thousands-separated amount, without decimals when whole (5000 -> '5,000')."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# ── Canonical rules ──────────────────────────────────────────────────

Rule = Callable[[ApplicationDraft, LoanProduct | None], str | None]


def _required(label: str, getter: Callable[[ApplicationDraft], Any]) -> Rule:
    def rule(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
        return f"{label} is required" if not _text(getter(draft)).strip() else None
    return rule


def _check_email(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
    email = _text(draft.personal_info.email)
    if not email.strip():
        return "Email is required"
    if not EMAIL_RE.match(email):
        return "Invalid email format"
    return None


def _check_phone(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
    phone = _text(draft.personal_info.phone)
    if not phone.strip():
        return "Phone is required"
    if len(NON_DIGIT_RE.sub("", phone)) != PHONE_DIGITS:
        return "Phone must be 10 digits"
    return None


def _check_pan(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
    pan = _text(draft.personal_info.pan)
    if not pan.strip():
        return "PAN is required"
    if len(pan) != PAN_LENGTH:
        return "PAN must be 10 characters"
    return None


def _check_aadhar(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
    aadhar = _text(draft.personal_info.aadhar)
    if not aadhar.strip():
        return "Aadhar is required"
    if len(aadhar) != AADHAR_LENGTH:
        return "Aadhar must be 12 digits"
    return None


def _address_rules(kind: AddressKind) -> dict[str, Rule]:
    def block(draft: ApplicationDraft) -> Address:
        return getattr(draft.address, kind.value)

    def check_pincode(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
        pincode = _text(block(draft).pincode)
        if not pincode.strip():
            return "Pincode is required"
        if not PINCODE_RE.match(pincode):
            return "Pincode must be 6 digits"
        return None

    return {
        address_key(kind, "street"): _required("Street Address", lambda d: block(d).street),
        address_key(kind, "city"): _required("City", lambda d: block(d).city),
        address_key(kind, "state"): _required("State", lambda d: block(d).state),
        address_key(kind, "pincode"): check_pincode,
    }


def _check_monthly_income(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
    income = draft.employment_info.monthly_income
    if is_blank(_text(income)):
        return "Monthly Income is required"
    number = parse_number(income)
    if number is None or number <= 0:
        return "Monthly Income must be a valid positive number"
    return None


def _bounded_rule(
    label: str,
    getter: Callable[[ApplicationDraft], Any],
    bounds: Callable[[LoanProduct], tuple[float | None, float | None]],
    render: Callable[[float], str],
) -> Rule:
    def rule(draft: ApplicationDraft, product: LoanProduct | None) -> str | None:
        raw = getter(draft)
        if is_blank(_text(raw)):
            return f"{label} is required"
        number = parse_number(raw)
        if number is None or number <= 0:
            return f"{label} must be a valid positive number"
        if product is not None:
            low, high = bounds(product)
            # Zero bounds mean "not configured".
            if low and number < low:
                return f"{label} must be at least {render(low)}"
            if high and number > high:
                return f"{label} must not exceed {render(high)}"
        return None
    return rule


def _check_selfie(draft: ApplicationDraft, _product: LoanProduct | None) -> str | None:
    return "Selfie is required" if draft.documents.selfie is None else None


CANONICAL_RULES: dict[WizardStep, dict[str, Rule]] = {
    WizardStep.PERSONAL: {
        "full_name": _required("Full Name", lambda d: d.personal_info.full_name),
        "email": _check_email,
        "phone": _check_phone,
        "date_of_birth": _required("Date of Birth", lambda d: d.personal_info.date_of_birth),
        "pan": _check_pan,
        "aadhar": _check_aadhar,
    },
    WizardStep.ADDRESS: {
        **_address_rules(AddressKind.CURRENT),
        **_address_rules(AddressKind.PERMANENT),
    },
    WizardStep.EMPLOYMENT: {
        "employment_type": _required("Employment Type", lambda d: d.employment_info.employment_type),
        "monthly_income": _check_monthly_income,
    },
    WizardStep.LOAN_DETAILS: {
        "loan_amount": _bounded_rule(
            "Loan Amount",
            lambda d: d.loan_details.loan_amount,
            lambda p: (p.min_loan_amount, p.max_loan_amount),
            lambda v: f"₹{format_amount(v)}",
        ),
        "loan_tenure": _bounded_rule(
            "Loan Tenure",
            lambda d: d.loan_details.loan_tenure,
            lambda p: (p.min_tenure, p.max_tenure),
            lambda v: f"{format_amount(v)} months",
        ),
    },
    WizardStep.DOCUMENTS: {
        SELFIE_KEY: _check_selfie,
    },
}

# Validation key -> owning step, for real-time validation.
CANONICAL_KEY_STEPS: dict[str, WizardStep] = {
    key: step for step, rules in CANONICAL_RULES.items() for key in rules
}


def check_dynamic(definition: FieldDefinition, value: Any) -> str | None:
    """Required-field check for one dynamic field (None when optional or filled)."""
    if definition.required and handler_for(definition.type).is_empty(value):
        return f"{definition.display_name} is required"
    return None


# ── Engine ───────────────────────────────────────────────────────────


class ValidationEngine:
    """Holds one ValidationState per step and applies the rules above."""

    def __init__(self) -> None:
        self.states: dict[WizardStep, ValidationState] = {step: ValidationState() for step in ACTIVE_STEPS}

    def state(self, step: WizardStep) -> ValidationState:
        return self.states[step]

    def step_for_key(self, key: str, schema: FormSchema) -> WizardStep | None:
        """Step whose state a validation key belongs to."""
        if key in CANONICAL_KEY_STEPS:
            return CANONICAL_KEY_STEPS[key]
        definition = _dynamic_definition(key, schema)
        if definition is not None:
            return SECTION_STEPS[definition.section]
        return None

    def validate_field(
        self,
        key: str,
        draft: ApplicationDraft,
        schema: FormSchema,
        product: LoanProduct | None,
    ) -> str | None:
        """Real-time check of one field; other statuses are left untouched.

        Returns:
            The error message, or None when the field is valid or untracked.
        """
        step = self.step_for_key(key, schema)
        if step is None:
            return None
        state = self.states[step]

        if key in CANONICAL_KEY_STEPS:
            error = CANONICAL_RULES[step][key](draft, product)
            state.record(key, error)
            return error

        definition = _dynamic_definition(key, schema)
        if definition is None or not definition.required:
            state.clear(key)
            return None
        error = check_dynamic(definition, draft.dynamic_field_values.get(definition.name))
        state.record(key, error)
        return error

    def validate_step(
        self,
        step: WizardStep,
        draft: ApplicationDraft,
        schema: FormSchema,
        product: LoanProduct | None,
    ) -> bool:
        """Re-check every rule of ``step`` and replace its state.

        Returns:
            True when the step has no errors.
        """
        state = ValidationState()
        for key, rule in CANONICAL_RULES[step].items():
            state.record(key, rule(draft, product))

        section = STEP_SECTIONS.get(step)
        if section is not None:
            for definition in schema.required(section):
                state.record(
                    dynamic_key(definition.name),
                    check_dynamic(definition, draft.dynamic_field_values.get(definition.name)),
                )

        self.states[step] = state
        return not state.has_errors

    def required_keys(self, step: WizardStep, schema: FormSchema) -> list[str]:
        keys = list(CANONICAL_RULES[step])
        section = STEP_SECTIONS.get(step)
        if section is not None:
            keys.extend(dynamic_key(d.name) for d in schema.required(section))
        return keys

    def is_step_satisfied(self, step: WizardStep, schema: FormSchema) -> bool:
        """Every required key of the step has been checked and none has an error."""
        state = self.states[step]
        if state.has_errors:
            return False
        return all(state.is_validated(key) for key in self.required_keys(step, schema))

    def mark_validated(self, step: WizardStep, key: str) -> None:
        self.states[step].record(key, None)

    def reset(self, step: WizardStep, key: str) -> None:
        self.states[step].clear(key)

    def prune_dynamic(self, schema: FormSchema) -> None:
        """Forget statuses of dynamic fields the schema no longer defines."""
        keep = {dynamic_key(name) for name in schema.names()}
        for state in self.states.values():
            for key in [k for k in (*state.errors, *state.validated) if k.startswith(DYNAMIC_KEY_PREFIX)]:
                if key not in keep:
                    state.clear(key)


def _dynamic_definition(key: str, schema: FormSchema) -> FieldDefinition | None:
    if not key.startswith(DYNAMIC_KEY_PREFIX):
        return None
    return schema.get(key.removeprefix(DYNAMIC_KEY_PREFIX))

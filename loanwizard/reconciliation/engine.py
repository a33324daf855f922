"""Reconciliation: fold administrator-defined fields into canonical ones.

Admins sometimes configure a dynamic field that plays the role of a
canonical one ("Loan Amount", "Employment Type"). Before submission, each
empty canonical field takes the value of the first dynamic field in its
section (schema order) whose name or label contains one of its keywords
and whose value is non-empty. Populated canonical fields are never
overwritten.

Pure functions; the keyword table is injectable.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loanwizard.forms.field_types import handler_for, is_blank
from loanwizard.forms.resolver import FormSchema
from loanwizard.models.enums import DraftSection, FormSection
from loanwizard.schemas.draft import ApplicationDraft
from loanwizard.schemas.forms import FieldDefinition


@dataclass(frozen=True)
class ReconciliationRule:
    """Canonical target, the dynamic section to scan, and its keywords (lower case)."""

    section: DraftSection
    field: str
    source: FormSection
    keywords: tuple[str, ...]


DEFAULT_RULES: tuple[ReconciliationRule, ...] = (
    ReconciliationRule(
        DraftSection.LOAN_DETAILS, "loan_amount", FormSection.LOAN_DETAILS,
        ("loanamount", "loan amount", "amount"),
    ),
    ReconciliationRule(
        DraftSection.LOAN_DETAILS, "loan_tenure", FormSection.LOAN_DETAILS,
        ("loantenure", "loan tenure", "tenure"),
    ),
    ReconciliationRule(
        DraftSection.EMPLOYMENT_INFO, "employment_type", FormSection.EMPLOYMENT,
        ("employmenttype", "employment type", "employment"),
    ),
    ReconciliationRule(
        DraftSection.EMPLOYMENT_INFO, "monthly_income", FormSection.EMPLOYMENT,
        ("monthlyincome", "monthly income", "income"),
    ),
)


def matches_keywords(definition: FieldDefinition, keywords: Sequence[str]) -> bool:
    """Case-insensitive substring match on the field's name or label."""
    name = definition.name.lower()
    label = definition.label.lower()
    return any(keyword in name or keyword in label for keyword in keywords)


def find_source_value(
    candidates: Sequence[FieldDefinition],
    values: dict[str, Any],
    keywords: Sequence[str],
) -> Any | None:
    """Value of the first matching candidate that is filled in."""
    for definition in candidates:
        handler = handler_for(definition.type)
        if handler.is_file or not matches_keywords(definition, keywords):
            continue
        value = values.get(definition.name)
        if not handler.is_empty(value):
            return value
    return None


def reconcile(
    draft: ApplicationDraft,
    schema: FormSchema,
    rules: Sequence[ReconciliationRule] = DEFAULT_RULES,
) -> ApplicationDraft:
    """Return a copy of ``draft`` with empty canonical fields filled from dynamic ones.

    The input draft is not modified. Applying the result again changes nothing.
    """
    reconciled = draft.model_copy(deep=True)
    for rule in rules:
        block = getattr(reconciled, rule.section.attribute)
        current = getattr(block, rule.field)
        if not is_blank(current):
            continue
        value = find_source_value(schema.section(rule.source), draft.dynamic_field_values, rule.keywords)
        if value is not None:
            setattr(block, rule.field, value)
    return reconciled

"""Schema resolver: maps the selected loan product to its dynamic form fields.

Resolution order:
    1. The loan's explicit category reference
    2. A category whose name equals the loan's type or name (case-insensitive)
    3. Fields configured for that category
    4. Fields configured for the loan itself (legacy path) when 3 is empty

Network failures never propagate: the wizard keeps working with canonical
fields only. A generation counter discards results that arrive after the
selection has moved on.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from loanwizard.api.client import ApiError, LoanApi
from loanwizard.events import emit
from loanwizard.models.enums import FieldType, FormSection
from loanwizard.schemas.events import EventType, SystemEvent
from loanwizard.schemas.forms import Category, FieldDefinition, LoanProduct

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormSchema:
    """Resolved dynamic fields, grouped by section and ordered by ``order``."""

    fields: tuple[FieldDefinition, ...] = ()
    sections: dict[FormSection, tuple[FieldDefinition, ...]] = field(default_factory=dict)

    @classmethod
    def from_fields(cls, fields: Iterable[FieldDefinition]) -> FormSchema:
        ordered = tuple(fields)
        sections = {
            section: tuple(sorted((f for f in ordered if f.section == section), key=lambda f: f.order))
            for section in FormSection
        }
        return cls(fields=ordered, sections=sections)

    def section(self, section: FormSection) -> tuple[FieldDefinition, ...]:
        return self.sections.get(section, ())

    def get(self, name: str) -> FieldDefinition | None:
        for definition in self.fields:
            if definition.name == name:
                return definition
        return None

    def names(self) -> set[str]:
        return {f.name for f in self.fields}

    def required(self, section: FormSection) -> list[FieldDefinition]:
        return [f for f in self.section(section) if f.required]

    def file_fields(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.type == FieldType.FILE]

    def __len__(self) -> int:
        return len(self.fields)


EMPTY_SCHEMA = FormSchema.from_fields(())


def resolve_category_id(loan: LoanProduct, categories: Sequence[Category]) -> str | None:
    """Find the category a loan belongs to."""
    if loan.category_id:
        return loan.category_id

    loan_type = loan.type.lower()
    loan_name = loan.name.lower()
    for category in categories:
        name = category.name.lower()
        if name and name in (loan_type, loan_name):
            logger.debug("Matched loan %s to category %s by name/type", loan.id, category.name)
            return category.id
    return None


def selection_key(loan: LoanProduct | None, categories: Sequence[Category]) -> tuple[object, ...] | None:
    """Inputs whose change requires re-resolution."""
    if loan is None:
        return None
    return (loan.id, loan.category_id, loan.type, loan.name, len(categories))


def filter_loans_by_category(loans: Sequence[LoanProduct], category_id: str | None) -> list[LoanProduct]:
    """Loans whose category reference matches; all loans when no category is chosen."""
    if not category_id:
        return list(loans)
    return [loan for loan in loans if loan.category_id == category_id]


def find_loan(loans: Sequence[LoanProduct], loan_id: str) -> LoanProduct | None:
    return next((loan for loan in loans if loan.id == loan_id), None)


class SchemaResolver:
    """Fetches the field set for the current loan selection."""

    def __init__(self, api: LoanApi, wizard_id: uuid.UUID | None = None) -> None:
        self._api = api
        self._wizard_id = wizard_id
        self._generation = 0
        self.is_loading = False
        self.schema: FormSchema = EMPTY_SCHEMA

    async def resolve(self, loan: LoanProduct, categories: Sequence[Category]) -> FormSchema | None:
        """Resolve and store the schema for ``loan``.

        Returns:
            The new schema, or None if a newer resolution superseded this one.
        """
        self._generation += 1
        generation = self._generation
        self.is_loading = True

        try:
            fields = await self._fetch_fields(loan, categories)
        finally:
            if generation == self._generation:
                self.is_loading = False

        if generation != self._generation:
            logger.info("Discarding stale schema for loan %s (generation %d)", loan.id, generation)
            await emit(SystemEvent(
                event_type=EventType.SCHEMA_DISCARDED,
                wizard_id=self._wizard_id,
                data={"loan_id": loan.id, "generation": generation},
                source_module="forms.resolver",
            ))
            return None

        self.schema = FormSchema.from_fields(fields)
        logger.info(
            "Resolved %d dynamic fields for loan %s (employment=%d, loanDetails=%d, documents=%d)",
            len(self.schema),
            loan.id,
            len(self.schema.section(FormSection.EMPLOYMENT)),
            len(self.schema.section(FormSection.LOAN_DETAILS)),
            len(self.schema.section(FormSection.DOCUMENTS)),
        )
        await emit(SystemEvent(
            event_type=EventType.SCHEMA_RESOLVED,
            wizard_id=self._wizard_id,
            data={"loan_id": loan.id, "field_count": len(self.schema)},
            source_module="forms.resolver",
        ))
        return self.schema

    def invalidate(self) -> None:
        """Make any in-flight resolution stale."""
        self._generation += 1
        self.is_loading = False

    async def _fetch_fields(self, loan: LoanProduct, categories: Sequence[Category]) -> list[FieldDefinition]:
        category_id = resolve_category_id(loan, categories)
        logger.debug("Resolved category %s for loan %s", category_id or "NONE", loan.id)

        try:
            fields: list[FieldDefinition] = []
            if category_id:
                fields = await self._api.get_form_fields_by_category(category_id)
            if not fields:
                fields = await self._api.get_form_fields_by_loan(loan.id)
        except ApiError as exc:
            logger.warning("Form field lookup failed for loan %s: %s", loan.id, exc)
            return []
        return fields

"""Field registry: the single write path into an ApplicationDraft.

Every setter is a partial merge: it touches exactly one attribute and leaves
siblings alone. Setters return the validation key of the field they wrote so
the caller can re-validate just that field.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from loanwizard.forms.field_types import handler_for
from loanwizard.forms.resolver import EMPTY_SCHEMA, FormSchema
from loanwizard.models.enums import AddressKind, DocumentCategory, DraftSection
from loanwizard.schemas.draft import ApplicationDraft, UploadedFile

logger = logging.getLogger(__name__)

SELFIE_KEY = "selfie"
DYNAMIC_KEY_PREFIX = "dynamic_"


def dynamic_key(name: str) -> str:
    return f"{DYNAMIC_KEY_PREFIX}{name}"


def address_key(kind: AddressKind, field: str) -> str:
    """``current`` + ``pincode`` -> ``current_pincode``."""
    return f"{kind.value}_{field}"


class FieldRegistry:
    """Owns the draft and the dynamic schema its dynamic values must match."""

    def __init__(self, draft: ApplicationDraft, schema: FormSchema = EMPTY_SCHEMA) -> None:
        self.draft = draft
        self.schema = schema

    # ── Canonical fields ─────────────────────────────────────────────

    def set_field(self, section: DraftSection, field: str, value: Any) -> str:
        """Set one scalar field of a flat section (personalInfo, employmentInfo, loanDetails)."""
        if section in (DraftSection.ADDRESS, DraftSection.DOCUMENTS):
            msg = f"Use set_address_field/set_documents for section {section.value}"
            raise ValueError(msg)
        block = getattr(self.draft, section.attribute)
        _assign(block, field, value)
        return field

    def set_address_field(self, kind: AddressKind, field: str, value: Any) -> str:
        """Set one field of the current or permanent address."""
        block = getattr(self.draft.address, kind.value)
        _assign(block, field, value)
        return address_key(kind, field)

    def copy_current_address(self) -> None:
        """Make the permanent address a copy of the current one."""
        self.draft.address.permanent = self.draft.address.current.model_copy()

    def set_documents(self, category: DocumentCategory, files: list[UploadedFile]) -> str:
        """Replace the uploads of one static document category."""
        attribute = _DOCUMENT_ATTRIBUTES[category]
        setattr(self.draft.documents, attribute, list(files))
        return attribute

    def set_selfie(self, artifact: UploadedFile | None) -> str:
        self.draft.documents.selfie = artifact
        return SELFIE_KEY

    # ── Dynamic fields ───────────────────────────────────────────────

    def set_dynamic(self, name: str, value: Any) -> str:
        """Store a dynamic field value in the shape its declared type requires.

        Raises:
            KeyError: If ``name`` is not part of the resolved schema.
        """
        definition = self.schema.get(name)
        if definition is None:
            msg = f"Unknown dynamic field: {name}"
            raise KeyError(msg)
        self.draft.dynamic_field_values[name] = handler_for(definition.type).coerce(value)
        return dynamic_key(name)

    def get_dynamic(self, name: str) -> Any:
        return self.draft.dynamic_field_values.get(name)

    def replace_schema(self, schema: FormSchema) -> list[str]:
        """Swap in a freshly resolved schema and drop values it no longer defines.

        Returns:
            Names of the discarded dynamic values.
        """
        self.schema = schema
        keep = schema.names()
        stale = [name for name in self.draft.dynamic_field_values if name not in keep]
        for name in stale:
            del self.draft.dynamic_field_values[name]
        if stale:
            logger.debug("Dropped %d stale dynamic values: %s", len(stale), stale)
        return stale


_DOCUMENT_ATTRIBUTES: dict[DocumentCategory, str] = {
    DocumentCategory.ID_PROOF: "id_proof",
    DocumentCategory.ADDRESS_PROOF: "address_proof",
    DocumentCategory.INCOME_PROOF: "income_proof",
    DocumentCategory.BANK_STATEMENT: "bank_statement",
    DocumentCategory.OTHER_DOCUMENTS: "other_documents",
}


def _assign(block: BaseModel, field: str, value: Any) -> None:
    if field not in type(block).model_fields:
        msg = f"{type(block).__name__} has no field {field!r}"
        raise KeyError(msg)
    setattr(block, field, value)

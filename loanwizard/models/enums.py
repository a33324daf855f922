"""Domain enums shared by the schema resolver, the draft and the wizard.

All enums use str mixin (or int for wizard steps) so values serialize as-is.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class FieldType(str, Enum):
    """Input type of an administrator-defined form field."""

    TEXT = "Text"
    NUMBER = "Number"
    EMAIL = "Email"
    PHONE = "Phone"
    DATE = "Date"
    TEXTAREA = "Textarea"
    SELECT = "Select"
    RADIO = "Radio"
    CHECKBOX = "Checkbox"
    FILE = "File"


class FormSection(str, Enum):
    """Wizard section an administrator-defined field is rendered in."""

    EMPLOYMENT = "employment"
    LOAN_DETAILS = "loanDetails"
    DOCUMENTS = "documents"


class FieldWidth(str, Enum):
    HALF = "half"
    FULL = "full"


class DraftSection(str, Enum):
    """Canonical blocks of an application draft (wire names)."""

    PERSONAL_INFO = "personalInfo"
    ADDRESS = "address"
    EMPLOYMENT_INFO = "employmentInfo"
    LOAN_DETAILS = "loanDetails"
    DOCUMENTS = "documents"

    @property
    def attribute(self) -> str:
        """Attribute name on ApplicationDraft."""
        return _DRAFT_ATTRIBUTES[self]


_DRAFT_ATTRIBUTES: dict[DraftSection, str] = {
    DraftSection.PERSONAL_INFO: "personal_info",
    DraftSection.ADDRESS: "address",
    DraftSection.EMPLOYMENT_INFO: "employment_info",
    DraftSection.LOAN_DETAILS: "loan_details",
    DraftSection.DOCUMENTS: "documents",
}


class AddressKind(str, Enum):
    CURRENT = "current"
    PERMANENT = "permanent"


class DocumentCategory(str, Enum):
    """Static document upload slots (the selfie is handled by capture)."""

    ID_PROOF = "idProof"
    ADDRESS_PROOF = "addressProof"
    INCOME_PROOF = "incomeProof"
    BANK_STATEMENT = "bankStatement"
    OTHER_DOCUMENTS = "otherDocuments"


class WizardStep(IntEnum):
    """Wizard position. SUBMITTED is terminal and outside the 1..5 range."""

    PERSONAL = 1
    ADDRESS = 2
    EMPLOYMENT = 3
    LOAN_DETAILS = 4
    DOCUMENTS = 5
    SUBMITTED = 6


class WizardAction(str, Enum):
    NEXT = "next"
    BACK = "back"
    SUBMIT = "submit"


class CaptureState(str, Enum):
    """Lifecycle of one camera session."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    CAPTURED = "captured"
    CANCELLED = "cancelled"


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    INVALID = "invalid"
    PRECHECK_FAILED = "precheck_failed"
    FAILED = "failed"
    IN_FLIGHT = "in_flight"

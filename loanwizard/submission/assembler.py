"""Submission assembler: precheck a reconciled draft and build the multipart body.

Parts:
    loanId, personalInfo, address, employmentInfo, loanDetails  JSON text parts
    idProof, addressProof, incomeProof, bankStatement,
    otherDocuments                                              one binary part per file
    selfie                                                      exactly one binary part
    dynamicFields                                               JSON of non-file dynamic values
    dynamicFiles_<field name>                                   one binary part per file
"""

from __future__ import annotations

import json
import logging
from typing import Any

from loanwizard.forms.field_types import handler_for, is_blank
from loanwizard.forms.resolver import FormSchema
from loanwizard.models.enums import DocumentCategory
from loanwizard.schemas.draft import ApplicationDraft, EmploymentInfo, LoanDetails, UploadedFile
from loanwizard.schemas.submission import FilePart, MultipartPayload
from loanwizard.wizard.validation import parse_number

logger = logging.getLogger(__name__)

DYNAMIC_FILES_PREFIX = "dynamicFiles_"

_DOCUMENT_PARTS: tuple[tuple[DocumentCategory, str], ...] = (
    (DocumentCategory.ID_PROOF, "id_proof"),
    (DocumentCategory.ADDRESS_PROOF, "address_proof"),
    (DocumentCategory.INCOME_PROOF, "income_proof"),
    (DocumentCategory.BANK_STATEMENT, "bank_statement"),
    (DocumentCategory.OTHER_DOCUMENTS, "other_documents"),
)


class SubmissionPrecheckError(Exception):
    """Raised when a reconciled draft is not fit to send. No request is made."""

    def __init__(self, message: str, user_message: str) -> None:
        super().__init__(message)
        self.user_message = user_message


def _as_json_number(value: float) -> int | float:
    return int(value) if value.is_integer() else value


def _positive(value: Any, field: str, missing: str, invalid: str) -> int | float:
    if is_blank(value):
        raise SubmissionPrecheckError(f"{field} is empty", user_message=missing)
    number = parse_number(value)
    if number is None or number <= 0:
        raise SubmissionPrecheckError(f"{field} is not a positive number: {value!r}", user_message=invalid)
    return _as_json_number(number)


def precheck(draft: ApplicationDraft) -> tuple[EmploymentInfo, LoanDetails, UploadedFile]:
    """Hard checks on a reconciled draft.

    Returns:
        Employment info and loan details with numeric fields as numbers,
        and the selfie.

    Raises:
        SubmissionPrecheckError: On the first failing check.
    """
    loan_details = draft.loan_details.model_copy()
    loan_details.loan_amount = _positive(
        loan_details.loan_amount,
        "loanAmount",
        missing="Please enter a valid loan amount",
        invalid="Loan amount must be a valid positive number",
    )
    loan_details.loan_tenure = _positive(
        loan_details.loan_tenure,
        "loanTenure",
        missing="Please enter a valid loan tenure",
        invalid="Loan tenure must be a valid positive number",
    )

    employment = draft.employment_info.model_copy()
    if is_blank(employment.employment_type):
        raise SubmissionPrecheckError("employmentType is empty", user_message="Please select an employment type")
    employment.monthly_income = _positive(
        employment.monthly_income,
        "monthlyIncome",
        missing="Please enter your monthly income",
        invalid="Monthly income must be a valid positive number",
    )

    selfie = draft.documents.selfie
    if selfie is None:
        raise SubmissionPrecheckError("selfie missing", user_message="Please capture a selfie before submitting")

    return employment, loan_details, selfie


def _file_part(name: str, upload: UploadedFile) -> FilePart:
    return name, (upload.filename, upload.content, upload.content_type)


def split_dynamic_values(
    draft: ApplicationDraft, schema: FormSchema
) -> tuple[dict[str, Any], dict[str, list[UploadedFile]]]:
    """Schema-ordered non-file values (empties dropped) and non-empty file lists."""
    values: dict[str, Any] = {}
    files: dict[str, list[UploadedFile]] = {}
    for definition in schema.fields:
        value = draft.dynamic_field_values.get(definition.name)
        if handler_for(definition.type).is_file:
            if value:
                files[definition.name] = list(value)
        elif not is_blank(value):
            values[definition.name] = value
    return values, files


def assemble_submission(draft: ApplicationDraft, schema: FormSchema) -> MultipartPayload:
    """Build the outbound message for a reconciled draft.

    Raises:
        SubmissionPrecheckError: If the draft fails the precheck.
    """
    employment, loan_details, selfie = precheck(draft)

    data = {
        "loanId": draft.loan_id,
        "personalInfo": draft.personal_info.model_dump_json(by_alias=True),
        "address": draft.address.model_dump_json(by_alias=True),
        "employmentInfo": employment.model_dump_json(by_alias=True),
        "loanDetails": loan_details.model_dump_json(by_alias=True),
    }

    files: list[FilePart] = []
    for category, attribute in _DOCUMENT_PARTS:
        for upload in getattr(draft.documents, attribute):
            files.append(_file_part(category.value, upload))
    files.append(_file_part("selfie", selfie))

    dynamic_values, dynamic_files = split_dynamic_values(draft, schema)
    data["dynamicFields"] = json.dumps(dynamic_values)
    for name, uploads in dynamic_files.items():
        for upload in uploads:
            files.append(_file_part(f"{DYNAMIC_FILES_PREFIX}{name}", upload))

    logger.info(
        "Assembled application for loan %s: %d file parts, %d dynamic values",
        draft.loan_id or "-",
        len(files),
        len(dynamic_values),
    )
    return MultipartPayload(data=data, files=files)

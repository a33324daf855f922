"""Tests for submission precheck and multipart assembly."""

from __future__ import annotations

import json

import pytest

from loanwizard.forms.resolver import EMPTY_SCHEMA, FormSchema
from loanwizard.models.enums import FieldType, FormSection
from loanwizard.schemas.draft import ApplicationDraft
from loanwizard.submission.assembler import SubmissionPrecheckError, assemble_submission, precheck
from tests.factories import fill_canonical, make_field, make_upload


@pytest.fixture()
def draft() -> ApplicationDraft:
    draft = fill_canonical(ApplicationDraft(loan_id="loan-1"))
    draft.documents.selfie = make_upload("selfie-1.jpg", b"\xff\xd8jpeg", "image/jpeg")
    return draft


# ── Precheck ─────────────────────────────────────────────────────────


class TestPrecheck:
    def test_numbers_converted(self, draft):
        employment, loan_details, selfie = precheck(draft)
        assert loan_details.loan_amount == 50000
        assert isinstance(loan_details.loan_amount, int)
        assert loan_details.loan_tenure == 12
        assert employment.monthly_income == 45000
        assert selfie.filename == "selfie-1.jpg"

    def test_draft_not_modified(self, draft):
        precheck(draft)
        assert draft.loan_details.loan_amount == "50000"

    def test_fractional_amount_kept(self, draft):
        draft.loan_details.loan_amount = "50000.50"
        _, loan_details, _ = precheck(draft)
        assert loan_details.loan_amount == 50000.5

    @pytest.mark.parametrize(
        ("attr", "value", "message"),
        [
            ("loan_amount", "", "Please enter a valid loan amount"),
            ("loan_amount", "abc", "Loan amount must be a valid positive number"),
            ("loan_tenure", "", "Please enter a valid loan tenure"),
            ("loan_tenure", "0", "Loan tenure must be a valid positive number"),
        ],
    )
    def test_loan_detail_failures(self, draft, attr, value, message):
        setattr(draft.loan_details, attr, value)
        with pytest.raises(SubmissionPrecheckError) as exc_info:
            precheck(draft)
        assert exc_info.value.user_message == message

    def test_missing_employment_type(self, draft):
        draft.employment_info.employment_type = " "
        with pytest.raises(SubmissionPrecheckError) as exc_info:
            precheck(draft)
        assert exc_info.value.user_message == "Please select an employment type"

    def test_missing_income(self, draft):
        draft.employment_info.monthly_income = ""
        with pytest.raises(SubmissionPrecheckError) as exc_info:
            precheck(draft)
        assert exc_info.value.user_message == "Please enter your monthly income"

    def test_missing_selfie(self, draft):
        draft.documents.selfie = None
        with pytest.raises(SubmissionPrecheckError) as exc_info:
            precheck(draft)
        assert exc_info.value.user_message == "Please capture a selfie before submitting"


# ── Assembly ─────────────────────────────────────────────────────────


class TestAssembleSubmission:
    def test_text_parts(self, draft):
        payload = assemble_submission(draft, EMPTY_SCHEMA)

        assert payload.data["loanId"] == "loan-1"
        personal = json.loads(payload.data["personalInfo"])
        assert personal["fullName"] == "Asha Rao"
        assert personal["dateOfBirth"] == "1990-04-12"
        address = json.loads(payload.data["address"])
        assert address["permanent"]["pincode"] == "560001"
        assert json.loads(payload.data["loanDetails"])["loanAmount"] == 50000
        assert json.loads(payload.data["employmentInfo"])["monthlyIncome"] == 45000
        assert json.loads(payload.data["dynamicFields"]) == {}

    def test_exactly_one_selfie_part(self, draft):
        payload = assemble_submission(draft, EMPTY_SCHEMA)
        assert payload.file_parts("selfie") == [("selfie-1.jpg", b"\xff\xd8jpeg", "image/jpeg")]

    def test_one_part_per_document(self, draft):
        draft.documents.id_proof = [make_upload("pan.pdf"), make_upload("aadhar.pdf")]
        draft.documents.bank_statement = [make_upload("stmt.pdf")]

        payload = assemble_submission(draft, EMPTY_SCHEMA)

        assert [p[0] for p in payload.file_parts("idProof")] == ["pan.pdf", "aadhar.pdf"]
        assert len(payload.file_parts("bankStatement")) == 1
        assert payload.file_parts("incomeProof") == []

    def test_dynamic_values_and_files_split(self, draft):
        schema = FormSchema.from_fields([
            make_field("employerGst", FormSection.EMPLOYMENT),
            make_field("consent", FormSection.DOCUMENTS, FieldType.CHECKBOX),
            make_field("notes", FormSection.LOAN_DETAILS),
            make_field("itr", FormSection.DOCUMENTS, FieldType.FILE),
        ])
        draft.dynamic_field_values = {
            "employerGst": "29ABCDE1234F1Z5",
            "consent": True,
            "notes": "",
            "itr": [make_upload("itr-2024.pdf"), make_upload("itr-2023.pdf")],
        }

        payload = assemble_submission(draft, schema)

        assert json.loads(payload.data["dynamicFields"]) == {"employerGst": "29ABCDE1234F1Z5", "consent": True}
        assert [p[0] for p in payload.file_parts("dynamicFiles_itr")] == ["itr-2024.pdf", "itr-2023.pdf"]

    def test_whitespace_dynamic_values_dropped(self, draft):
        schema = FormSchema.from_fields([
            make_field("notes", FormSection.LOAN_DETAILS),
            make_field("consent", FormSection.DOCUMENTS, FieldType.CHECKBOX),
        ])
        draft.dynamic_field_values = {"notes": "   ", "consent": False}

        payload = assemble_submission(draft, schema)

        assert json.loads(payload.data["dynamicFields"]) == {"consent": False}

    def test_precheck_failure_builds_nothing(self, draft):
        draft.documents.selfie = None
        with pytest.raises(SubmissionPrecheckError):
            assemble_submission(draft, EMPTY_SCHEMA)

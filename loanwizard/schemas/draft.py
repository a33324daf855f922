"""Pydantic models for the application draft owned by a wizard instance.

Attributes are snake_case; JSON dumps use the camelCase wire names
(``model_dump(by_alias=True)``). Assignment is not re-validated, so the
field registry can store raw form input (strings) and partial values.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_DRAFT_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

# Canonical numeric inputs hold raw form text until submission.
NumericInput = str | int | float | None


class UploadedFile(BaseModel):
    """Binary artifact attached to the draft (upload or captured selfie)."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def __repr__(self) -> str:
        return f"UploadedFile({self.filename!r}, {len(self.content)} bytes, {self.content_type!r})"


class PersonalInfo(BaseModel):
    model_config = _DRAFT_CONFIG

    full_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    gender: str = ""
    pan: str = ""
    aadhar: str = ""
    marital_status: str = ""
    number_of_dependents: int | str = 0


class Address(BaseModel):
    model_config = _DRAFT_CONFIG

    street: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    country: str = "India"


class AddressBlock(BaseModel):
    model_config = _DRAFT_CONFIG

    current: Address = Field(default_factory=Address)
    permanent: Address = Field(default_factory=Address)


class EmploymentInfo(BaseModel):
    model_config = _DRAFT_CONFIG

    employment_type: str = ""
    company_name: str = ""
    designation: str = ""
    work_experience: str = ""
    monthly_income: NumericInput = ""
    business_type: str = ""
    business_age: str = ""


class LoanDetails(BaseModel):
    model_config = _DRAFT_CONFIG

    loan_amount: NumericInput = ""
    loan_tenure: NumericInput = ""
    purpose: str = ""


class Documents(BaseModel):
    model_config = _DRAFT_CONFIG

    id_proof: list[UploadedFile] = Field(default_factory=list)
    address_proof: list[UploadedFile] = Field(default_factory=list)
    income_proof: list[UploadedFile] = Field(default_factory=list)
    bank_statement: list[UploadedFile] = Field(default_factory=list)
    other_documents: list[UploadedFile] = Field(default_factory=list)
    selfie: UploadedFile | None = None


class ApplicationDraft(BaseModel):
    """Everything the applicant has entered so far."""

    model_config = _DRAFT_CONFIG

    loan_id: str = ""
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    address: AddressBlock = Field(default_factory=AddressBlock)
    employment_info: EmploymentInfo = Field(default_factory=EmploymentInfo)
    loan_details: LoanDetails = Field(default_factory=LoanDetails)
    documents: Documents = Field(default_factory=Documents)
    # FieldDefinition.name -> str | bool | list[UploadedFile]
    dynamic_field_values: dict[str, Any] = Field(default_factory=dict)

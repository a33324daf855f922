"""Inputs used to pre-fill a fresh application draft.

The eligibility record is the hand-off left behind by the eligibility check
page; the identity profile comes from the signed-in account.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class IdentityProfile(BaseModel):
    """Subset of the signed-in user's profile."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""
    phone: str = ""
    pan: str = ""
    aadhar: str = ""


class EligibilityRecord(BaseModel):
    """Answers captured by a prior eligibility check."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    pancard: str = ""
    personal_email: str = ""
    dob: str = ""
    gender: str = ""
    employment_type: str = ""
    company_name: str = ""
    net_monthly_income: str | float | None = None
    pin_code: str = ""
    state: str = ""
    city: str = ""


class DraftSeed(BaseModel):
    """Explicit seed passed to the wizard at construction."""

    loan_id: str | None = None
    identity: IdentityProfile | None = None
    eligibility: EligibilityRecord | None = None

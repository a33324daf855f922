"""Build the initial application draft from an explicit DraftSeed.

Identity profile values go in first; non-empty eligibility answers win over
them. Nothing is read from ambient storage.
"""

from __future__ import annotations

from loanwizard.schemas.draft import Address, AddressBlock, ApplicationDraft, EmploymentInfo, PersonalInfo
from loanwizard.schemas.seed import DraftSeed

# Eligibility-check employment codes -> wizard employment types
EMPLOYMENT_TYPE_MAP: dict[str, str] = {
    "SALARIED": "Salaried",
    "SELF EMPLOYED": "Self-Employed",
}


def _first(*values: object) -> str:
    for value in values:
        if value is not None and str(value).strip():
            return str(value)
    return ""


def build_draft(seed: DraftSeed | None = None, default_country: str = "India") -> ApplicationDraft:
    seed = seed or DraftSeed()
    identity = seed.identity
    eligibility = seed.eligibility

    personal = PersonalInfo(
        full_name=identity.name if identity else "",
        email=identity.email if identity else "",
        phone=identity.phone if identity else "",
        pan=identity.pan if identity else "",
        aadhar=identity.aadhar if identity else "",
    )
    employment = EmploymentInfo()
    current = Address(country=default_country)

    if eligibility is not None:
        personal.pan = _first(eligibility.pancard, personal.pan)
        personal.email = _first(eligibility.personal_email, personal.email)
        personal.date_of_birth = _first(eligibility.dob, personal.date_of_birth)
        personal.gender = _first(eligibility.gender, personal.gender)

        employment.employment_type = EMPLOYMENT_TYPE_MAP.get(eligibility.employment_type, "")
        employment.company_name = _first(eligibility.company_name)
        employment.monthly_income = _first(eligibility.net_monthly_income)

        current.pincode = _first(eligibility.pin_code)
        current.state = _first(eligibility.state)
        current.city = _first(eligibility.city)

    return ApplicationDraft(
        loan_id=seed.loan_id or "",
        personal_info=personal,
        address=AddressBlock(current=current, permanent=Address(country=default_country)),
        employment_info=employment,
    )

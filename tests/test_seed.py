"""Tests for building the initial draft from a seed."""

from __future__ import annotations

from loanwizard.schemas.seed import DraftSeed, EligibilityRecord, IdentityProfile
from loanwizard.seed import build_draft


class TestBuildDraft:
    def test_empty_seed(self):
        draft = build_draft()
        assert draft.loan_id == ""
        assert draft.personal_info.full_name == ""
        assert draft.address.current.country == "India"
        assert draft.address.permanent.country == "India"
        assert draft.dynamic_field_values == {}

    def test_identity_profile(self):
        seed = DraftSeed(
            loan_id="loan-1",
            identity=IdentityProfile(name="Asha Rao", email="asha@example.com", phone="9876543210", pan="ABCDE1234F"),
        )
        draft = build_draft(seed)

        assert draft.loan_id == "loan-1"
        assert draft.personal_info.full_name == "Asha Rao"
        assert draft.personal_info.pan == "ABCDE1234F"

    def test_eligibility_overrides_identity(self):
        seed = DraftSeed(
            identity=IdentityProfile(email="old@example.com", pan="OLDPAN0000"),
            eligibility=EligibilityRecord.model_validate({
                "pancard": "NEWPA1234N",
                "personalEmail": "",
                "employmentType": "SELF EMPLOYED",
                "companyName": "Rao Traders",
                "netMonthlyIncome": "85000",
                "pinCode": "560001",
                "city": "Bengaluru",
                "state": "Karnataka",
            }),
        )
        draft = build_draft(seed)

        assert draft.personal_info.pan == "NEWPA1234N"
        # empty eligibility values leave the profile value in place
        assert draft.personal_info.email == "old@example.com"
        assert draft.employment_info.employment_type == "Self-Employed"
        assert draft.employment_info.company_name == "Rao Traders"
        assert draft.employment_info.monthly_income == "85000"
        assert draft.address.current.pincode == "560001"
        assert draft.address.permanent.pincode == ""

    def test_unknown_employment_code_left_blank(self):
        seed = DraftSeed(eligibility=EligibilityRecord(employment_type="RETIRED"))
        assert build_draft(seed).employment_info.employment_type == ""

    def test_default_country_configurable(self):
        assert build_draft(default_country="Nepal").address.current.country == "Nepal"

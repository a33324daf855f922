"""Pydantic schemas for the loan catalog and administrator-defined form fields.

Read-only data supplied by the platform API. Mongo-style ``_id`` keys are
accepted alongside ``id``.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from loanwizard.models.enums import FieldType, FieldWidth, FormSection


class FieldDefinition(BaseModel):
    """One administrator-configured input, immutable for the session."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: str
    label: str = ""
    type: FieldType = FieldType.TEXT
    section: FormSection = FormSection.EMPLOYMENT
    required: bool = False
    order: int = 0
    width: FieldWidth = FieldWidth.FULL
    options: tuple[str, ...] = ()
    placeholder: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.name


class CategoryRef(BaseModel):
    """Populated category relation embedded in a loan."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""


class InterestRate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    min: float | None = None
    max: float | None = None
    default: float | None = None


class LoanProduct(BaseModel):
    """Loan product as listed by the catalog."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    type: str = ""
    category: CategoryRef | str | None = None
    min_loan_amount: float | None = Field(
        default=None, validation_alias=AliasChoices("minLoanAmount", "min_loan_amount")
    )
    max_loan_amount: float | None = Field(
        default=None, validation_alias=AliasChoices("maxLoanAmount", "max_loan_amount")
    )
    min_tenure: float | None = Field(default=None, validation_alias=AliasChoices("minTenure", "min_tenure"))
    max_tenure: float | None = Field(default=None, validation_alias=AliasChoices("maxTenure", "max_tenure"))
    interest_rate: InterestRate | None = Field(
        default=None, validation_alias=AliasChoices("interestRate", "interest_rate")
    )

    @property
    def category_id(self) -> str | None:
        """Explicit category reference, whether populated or a bare id."""
        if isinstance(self.category, CategoryRef):
            return self.category.id
        return self.category or None

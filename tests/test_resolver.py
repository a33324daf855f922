"""Tests for dynamic schema resolution.

Covers:
- Category lookup: explicit reference, then name/type match
- Category fields first, loan fields as fallback
- API failure degrades to an empty schema
- Stale results discarded when the selection changes mid-flight
- Section grouping and stable ordering
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from loanwizard.api.client import ApiError
from loanwizard.forms.resolver import (
    FormSchema,
    SchemaResolver,
    filter_loans_by_category,
    find_loan,
    resolve_category_id,
    selection_key,
)
from loanwizard.models.enums import FormSection
from loanwizard.schemas.events import EventType
from loanwizard.schemas.forms import Category
from tests.factories import make_api, make_field, make_loan

CATEGORIES = [Category(id="cat-home", name="Home Loan"), Category(id="cat-biz", name="Business")]


# ── Category lookup ──────────────────────────────────────────────────


class TestResolveCategory:
    def test_explicit_reference_wins(self):
        loan = make_loan(category={"_id": "cat-explicit", "name": "Whatever"}, type="Business")
        assert resolve_category_id(loan, CATEGORIES) == "cat-explicit"

    def test_match_by_type_case_insensitive(self):
        loan = make_loan(category=None, type="business", name="SME Credit")
        assert resolve_category_id(loan, CATEGORIES) == "cat-biz"

    def test_match_by_name(self):
        loan = make_loan(category=None, type="Secured", name="HOME LOAN")
        assert resolve_category_id(loan, CATEGORIES) == "cat-home"

    def test_no_match(self):
        loan = make_loan(category=None, type="Gold", name="Gold Loan")
        assert resolve_category_id(loan, CATEGORIES) is None


class TestCatalogHelpers:
    def test_filter_by_category(self):
        loans = [make_loan("a", category="cat-home"), make_loan("b", category="cat-biz")]
        assert [loan.id for loan in filter_loans_by_category(loans, "cat-biz")] == ["b"]
        assert len(filter_loans_by_category(loans, None)) == 2

    def test_find_loan(self):
        loans = [make_loan("a"), make_loan("b")]
        assert find_loan(loans, "b").id == "b"
        assert find_loan(loans, "zzz") is None

    def test_selection_key_tracks_category_count(self):
        loan = make_loan()
        assert selection_key(None, CATEGORIES) is None
        assert selection_key(loan, CATEGORIES) != selection_key(loan, CATEGORIES[:1])


# ── Schema grouping ──────────────────────────────────────────────────


class TestFormSchema:
    def test_sections_sorted_by_order_stable_on_ties(self):
        schema = FormSchema.from_fields([
            make_field("b", FormSection.EMPLOYMENT, order=2),
            make_field("a", FormSection.EMPLOYMENT, order=1),
            make_field("c", FormSection.EMPLOYMENT, order=2),
            make_field("d", FormSection.DOCUMENTS, order=0),
        ])
        assert [f.name for f in schema.section(FormSection.EMPLOYMENT)] == ["a", "b", "c"]
        assert [f.name for f in schema.section(FormSection.LOAN_DETAILS)] == []
        assert len(schema) == 4


# ── Resolver ─────────────────────────────────────────────────────────


class TestSchemaResolver:
    @pytest.mark.asyncio()
    async def test_category_fields_used(self):
        fields = [make_field("gst"), make_field("turnover", FormSection.LOAN_DETAILS)]
        api = make_api(category_fields=fields)
        resolver = SchemaResolver(api)

        with patch("loanwizard.forms.resolver.emit", new_callable=AsyncMock) as mock_emit:
            schema = await resolver.resolve(make_loan(category="cat-biz"), CATEGORIES)

        assert len(schema) == 2
        api.get_form_fields_by_category.assert_awaited_once_with("cat-biz")
        api.get_form_fields_by_loan.assert_not_awaited()
        assert mock_emit.call_args.args[0].event_type == EventType.SCHEMA_RESOLVED

    @pytest.mark.asyncio()
    async def test_loan_fallback_when_category_empty(self):
        fields = [make_field(f"f{i}") for i in range(3)]
        api = make_api(category_fields=[], loan_fields=fields)
        resolver = SchemaResolver(api)

        with patch("loanwizard.forms.resolver.emit", new_callable=AsyncMock):
            schema = await resolver.resolve(make_loan("loan-9", category="cat-biz"), CATEGORIES)

        assert [f.name for f in schema.fields] == ["f0", "f1", "f2"]
        api.get_form_fields_by_loan.assert_awaited_once_with("loan-9")

    @pytest.mark.asyncio()
    async def test_no_category_goes_straight_to_loan_fields(self):
        api = make_api(loan_fields=[make_field("x")])
        resolver = SchemaResolver(api)

        with patch("loanwizard.forms.resolver.emit", new_callable=AsyncMock):
            schema = await resolver.resolve(make_loan(category=None, type="Gold", name="Gold"), CATEGORIES)

        assert schema.names() == {"x"}
        api.get_form_fields_by_category.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_api_error_yields_empty_schema(self):
        api = make_api()
        api.get_form_fields_by_category = AsyncMock(side_effect=ApiError("boom", status_code=500))
        resolver = SchemaResolver(api)

        with patch("loanwizard.forms.resolver.emit", new_callable=AsyncMock):
            schema = await resolver.resolve(make_loan(), CATEGORIES)

        assert len(schema) == 0
        assert resolver.is_loading is False

    @pytest.mark.asyncio()
    async def test_stale_result_discarded(self):
        gate = asyncio.Event()
        slow_fields = [make_field("slow")]
        fast_fields = [make_field("fast")]

        async def fields_for(category_id: str):
            if category_id == "cat-slow":
                await gate.wait()
                return slow_fields
            return fast_fields

        api = make_api()
        api.get_form_fields_by_category = AsyncMock(side_effect=fields_for)
        resolver = SchemaResolver(api)

        with patch("loanwizard.forms.resolver.emit", new_callable=AsyncMock) as mock_emit:
            slow = asyncio.create_task(resolver.resolve(make_loan("a", category="cat-slow"), []))
            await asyncio.sleep(0)
            assert resolver.is_loading is True

            fast = await resolver.resolve(make_loan("b", category="cat-fast"), [])
            gate.set()
            stale = await slow

        assert stale is None
        assert fast.names() == {"fast"}
        assert resolver.schema.names() == {"fast"}
        assert resolver.is_loading is False
        emitted = [c.args[0].event_type for c in mock_emit.call_args_list]
        assert EventType.SCHEMA_DISCARDED in emitted

    @pytest.mark.asyncio()
    async def test_invalidate_discards_in_flight(self):
        gate = asyncio.Event()

        async def slow(_category_id: str):
            await gate.wait()
            return [make_field("late")]

        api = make_api()
        api.get_form_fields_by_category = AsyncMock(side_effect=slow)
        resolver = SchemaResolver(api)

        with patch("loanwizard.forms.resolver.emit", new_callable=AsyncMock):
            task = asyncio.create_task(resolver.resolve(make_loan(), []))
            await asyncio.sleep(0)
            resolver.invalidate()
            gate.set()
            result = await task

        assert result is None
        assert len(resolver.schema) == 0

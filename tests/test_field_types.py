"""Tests for per-type dynamic field handling."""

from __future__ import annotations

from loanwizard.forms.field_types import FIELD_TYPE_HANDLERS, handler_for, is_blank
from loanwizard.models.enums import FieldType
from tests.factories import make_upload


class TestHandlers:
    def test_every_type_has_a_handler(self):
        assert set(FIELD_TYPE_HANDLERS) == set(FieldType)

    def test_only_file_is_binary(self):
        binary = {t for t in FieldType if handler_for(t).is_file}
        assert binary == {FieldType.FILE}

    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank("   ")
        assert is_blank([])
        assert not is_blank("0")
        assert not is_blank(0)
        assert not is_blank([make_upload()])

    def test_scalar_coercion_keeps_numbers_and_text(self):
        assert handler_for(FieldType.SELECT).coerce(3) == 3
        assert handler_for(FieldType.RADIO).coerce("Yes") == "Yes"

    def test_checkbox_false_is_empty(self):
        handler = handler_for(FieldType.CHECKBOX)
        assert handler.is_empty(False)
        assert not handler.is_empty(handler.coerce("on"))

    def test_file_none_becomes_empty_list(self):
        assert handler_for(FieldType.FILE).coerce(None) == []

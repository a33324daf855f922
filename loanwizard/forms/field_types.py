"""Per-type behaviour of administrator-defined fields.

One handler per FieldType: how raw input is stored and what counts as empty
for the required-field check. ``handler_for`` is the only dispatch point.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from loanwizard.models.enums import FieldType
from loanwizard.schemas.draft import UploadedFile


@dataclass(frozen=True)
class FieldTypeHandler:
    coerce: Callable[[Any], Any]
    is_empty: Callable[[Any], bool]
    is_file: bool = False


def is_blank(value: Any) -> bool:
    """None, whitespace-only string, or zero-length list."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _coerce_scalar(value: Any) -> Any:
    if value is None or (isinstance(value, (int, float)) and not isinstance(value, bool)):
        return value
    return str(value)


def _coerce_checkbox(value: Any) -> bool:
    return bool(value)


def _coerce_files(value: Any) -> list[UploadedFile]:
    if value is None:
        return []
    if isinstance(value, UploadedFile):
        return [value]
    files = list(value) if isinstance(value, Iterable) else [value]
    for item in files:
        if not isinstance(item, UploadedFile):
            msg = f"File fields accept UploadedFile items, got {type(item).__name__}"
            raise TypeError(msg)
    return files


def _checkbox_empty(value: Any) -> bool:
    # A required checkbox is an acknowledgement: only True satisfies it.
    return value is not True


_SCALAR = FieldTypeHandler(coerce=_coerce_scalar, is_empty=is_blank)

FIELD_TYPE_HANDLERS: dict[FieldType, FieldTypeHandler] = {
    FieldType.TEXT: _SCALAR,
    FieldType.NUMBER: _SCALAR,
    FieldType.EMAIL: _SCALAR,
    FieldType.PHONE: _SCALAR,
    FieldType.DATE: _SCALAR,
    FieldType.TEXTAREA: _SCALAR,
    FieldType.SELECT: _SCALAR,
    FieldType.RADIO: _SCALAR,
    FieldType.CHECKBOX: FieldTypeHandler(coerce=_coerce_checkbox, is_empty=_checkbox_empty),
    FieldType.FILE: FieldTypeHandler(coerce=_coerce_files, is_empty=is_blank, is_file=True),
}

_missing = set(FieldType) - set(FIELD_TYPE_HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for field types: {sorted(t.value for t in _missing)}")


def handler_for(field_type: FieldType) -> FieldTypeHandler:
    return FIELD_TYPE_HANDLERS[field_type]

"""
import_engine.validators - Type-directed validation and coercion.

Each template field type maps to one function in VALIDATORS.  A
validator receives a non-empty raw cell and the field definition and
either returns the value to store or raises a ValidationError subclass.
Adding a field type means adding one function and one table entry.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from import_engine.contracts import StepDraft
from import_engine.errors import (
    MalformedURL, MissingRequired, RangeViolation, TypeCoercionFailure,
    UnknownOption,
)
from import_engine.field_map import TRUTHY
from schema import field_types as ft
from schema.templates import FieldDefinition

Validator = Callable[[str, FieldDefinition], Any]

_ORDINAL = re.compile(r"^\s*\d+\.\s+")


def rich_text(text: str) -> dict:
    """Wrap plain text as a single-paragraph rich-text document."""
    paragraph: dict = {"type": "paragraph"}
    if text:
        paragraph["content"] = [{"type": "text", "text": text}]
    return {"type": "doc", "content": [paragraph]}


def validate(raw: Optional[str], fd: FieldDefinition) -> Any:
    """
    Validate one cell against its field definition.

    Empty input returns None, or raises MissingRequired when the field
    is required.  Unknown type tags pass the raw value through.
    """
    if raw is None or str(raw).strip() == "":
        if fd.is_required:
            raise MissingRequired("Required field cannot be empty", fd.display_name)
        return None

    validator = VALIDATORS.get(fd.type_tag)
    if validator is None:
        return raw
    return validator(str(raw), fd)


# ── Strategies ─────────────────────────────────────────────────────────

def _text(raw: str, fd: FieldDefinition) -> str:
    return raw


def _long_text(raw: str, fd: FieldDefinition) -> dict:
    return rich_text(raw)


def _check_range(value: float, fd: FieldDefinition) -> None:
    if fd.min_value is not None and value < fd.min_value:
        raise RangeViolation(
            f"Value {value} is less than minimum {fd.min_value}", fd.display_name)
    if fd.max_value is not None and value > fd.max_value:
        raise RangeViolation(
            f"Value {value} is greater than maximum {fd.max_value}", fd.display_name)


def _integer(raw: str, fd: FieldDefinition) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        raise TypeCoercionFailure(f"Invalid integer value: {raw}", fd.display_name)
    _check_range(value, fd)
    return value


def _number(raw: str, fd: FieldDefinition) -> float:
    try:
        value = float(raw.strip())
    except ValueError:
        raise TypeCoercionFailure(f"Invalid number value: {raw}", fd.display_name)
    if not math.isfinite(value):
        raise TypeCoercionFailure(f"Invalid number value: {raw}", fd.display_name)
    _check_range(value, fd)
    return value


def _checkbox(raw: str, fd: FieldDefinition) -> bool:
    return raw.strip().lower() in TRUTHY


def _resolve_option(token: str, fd: FieldDefinition) -> int:
    wanted = token.strip().lower()
    for opt in fd.options:
        if opt.name.strip().lower() == wanted:
            return opt.id
    raise UnknownOption(token.strip(), [o.name for o in fd.options], fd.display_name)


def _dropdown(raw: str, fd: FieldDefinition) -> int:
    return _resolve_option(raw, fd)


def _multi_select(raw: str, fd: FieldDefinition) -> list[int]:
    tokens = [t.strip() for t in raw.split(",") if t.strip()]
    return [_resolve_option(t, fd) for t in tokens]


def _link(raw: str, fd: FieldDefinition) -> str:
    value = raw.strip()
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise MalformedURL(f"Invalid URL: {raw}", fd.display_name)
    return value


def parse_steps(raw: str) -> list[StepDraft]:
    """
    Parse a Steps cell.

    Accepts a JSON array of {step, expectedResult} objects, or plain
    text with one step per line in the form "1. do this | expect that".
    """
    from_json = _steps_from_json(raw)
    if from_json is not None:
        return from_json

    steps: list[StepDraft] = []
    for line in raw.splitlines():
        line = _ORDINAL.sub("", line).strip()
        if not line:
            continue
        text, _sep, expected = line.partition("|")
        expected = expected.strip()
        steps.append(StepDraft(
            step=rich_text(text.strip()),
            expected_result=rich_text(expected) if expected else None,
            order=len(steps),
        ))
    return steps


def _steps_from_json(raw: str) -> Optional[list[StepDraft]]:
    if not raw.lstrip().startswith("["):
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list):
        return None

    steps = []
    for item in parsed:
        if isinstance(item, str):
            item = {"step": item}
        if not isinstance(item, dict):
            continue
        step = item.get("step") or ""
        expected = item.get("expectedResult")
        steps.append(StepDraft(
            step=rich_text(step) if isinstance(step, str) else step,
            expected_result=(rich_text(expected) if isinstance(expected, str) else expected)
            if expected else None,
            order=len(steps),
        ))
    return steps


def _steps(raw: str, fd: FieldDefinition) -> list[StepDraft]:
    return parse_steps(raw)


VALIDATORS: dict[str, Validator] = {
    ft.TEXT_STRING:  _text,
    ft.TEXT_LONG:    _long_text,
    ft.INTEGER:      _integer,
    ft.NUMBER:       _number,
    ft.CHECKBOX:     _checkbox,
    ft.DROPDOWN:     _dropdown,
    ft.MULTI_SELECT: _multi_select,
    ft.LINK:         _link,
    ft.STEPS:        _steps,
}

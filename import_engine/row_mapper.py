"""
import_engine.row_mapper - Apply column mappings to one decoded row.

Single-responsibility: given a row dict, produce a CaseRow plus the
list of cell-level validation errors.  No database access happens
here; folders are resolved later by Phase 1.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from import_engine.contracts import CaseRow, FieldMapping, ImportRowError
from import_engine.errors import ValidationError
from import_engine.field_map import (
    LOOSE_INT_TARGETS, RELATION_TARGETS, RESERVED_TARGETS, is_truthy, loose_int,
)
from import_engine.validators import parse_steps, validate
from schema import field_types as ft
from schema.templates import TemplateFieldSchema

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"\d+")


@dataclass
class MappedRow:
    case_row: CaseRow
    errors: list[ImportRowError] = field(default_factory=list)
    failed_fields: set[int] = field(default_factory=set)    # field ids that errored


class FieldMapper:

    def __init__(self, schema: TemplateFieldSchema, mappings: list[FieldMapping]):
        self._schema = schema
        self._mappings = mappings

    def map_row(self, row: dict, row_number: int) -> MappedRow:
        """Build a CaseRow from `row`, collecting validation errors."""
        mapped = MappedRow(CaseRow(row_number=row_number))

        for mapping in self._mappings:
            value = _cell(row, mapping.source_column)
            target = mapping.target_field

            if target in RESERVED_TARGETS:
                self._apply_reserved(mapped, target, value)
            else:
                self._apply_custom(mapped, target, value)

        return mapped

    # ── Private helpers ────────────────────────────────────────────────

    def _apply_reserved(self, mapped: MappedRow, target: str, value: Optional[str]):
        cr = mapped.case_row
        attr = RESERVED_TARGETS[target]

        if target in LOOSE_INT_TARGETS:
            setattr(cr, attr, loose_int(value))
        elif target == "automated":
            cr.automated = is_truthy(value)
        elif target == "steps":
            if value and value.strip():
                cr.steps = parse_steps(value)
        elif target == "name":
            cr.name = (value or "").strip()
        elif target == "folder":
            cr.folder_path = value or ""
        elif target in RELATION_TARGETS:
            # "" rather than None, so an update still clears the set
            setattr(cr, attr, (value or "").strip())
        else:
            # workflowState, createdAt, createdBy: kept raw, resolved during commit
            setattr(cr, attr, value.strip() if value and value.strip() else None)

    def _apply_custom(self, mapped: MappedRow, target: str, value: Optional[str]):
        fd = self._schema.find(target)
        if fd is None:
            logger.debug(f"Mapping target {target!r} is not in template "
                         f"{self._schema.template_name!r}; ignored")
            return

        try:
            validated = validate(value, fd)
        except ValidationError as exc:
            mapped.failed_fields.add(fd.id)
            mapped.errors.append(ImportRowError(
                mapped.case_row.row_number, exc.field or fd.display_name, exc.message,
            ))
            return

        if fd.type_tag == ft.STEPS:
            mapped.case_row.steps = validated or []
        else:
            mapped.case_row.field_values[fd.id] = validated


def _cell(row: dict, column: str) -> Optional[str]:
    """Look up a cell by header, falling back to "Column N" for header-less input."""
    if column in row:
        return row[column]
    m = _DIGITS.search(column)
    if m:
        return row.get(f"Column {int(m.group())}")
    return None

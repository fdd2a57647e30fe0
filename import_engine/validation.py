"""
import_engine.validation - Phase 1: map and validate every row.

Produces a ValidationResult holding either the batch of CaseRows
ready to commit or the aggregated error list.  Folder destinations
are resolved (and created) here, so folders survive a rejected run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from import_engine.contracts import CaseRow, ImportRequest, ImportRowError, ROOT_FOLDER
from import_engine.errors import ValidationError
from import_engine.folders import FolderResolver
from import_engine.row_mapper import FieldMapper
from schema import field_types as ft
from schema.templates import TemplateFieldSchema

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    batch: list[CaseRow] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _is_empty(value) -> bool:
    return value is None or value == "" or value == []


def validate_rows(
    request: ImportRequest,
    schema: TemplateFieldSchema,
    rows: list[dict],
    folders: FolderResolver,
) -> ValidationResult:
    """Run the field mapper and required checks on every row, in order."""
    mapper = FieldMapper(schema, request.field_mappings)
    result = ValidationResult()

    for idx, row in enumerate(rows, start=1):
        mapped = mapper.map_row(row, idx)
        cr = mapped.case_row
        errors = list(mapped.errors)

        if not cr.name:
            errors.append(ImportRowError(idx, "Name", "Name is required"))
            result.errors.extend(errors)
            continue

        for fd in schema.required:
            if fd.id in mapped.failed_fields:
                continue
            if fd.type_tag == ft.STEPS:
                missing = not cr.steps
            else:
                missing = _is_empty(cr.field_values.get(fd.id))
            if missing:
                errors.append(ImportRowError(idx, fd.display_name, "Required field is missing"))

        try:
            cr.folder_id = _destination(request, cr, folders)
        except ValidationError as exc:
            errors.append(ImportRowError(idx, exc.field or "Folder", exc.message))

        if errors:
            result.errors.extend(errors)
        else:
            result.batch.append(cr)

    logger.info(f"Validated {len(rows)} rows: {len(result.batch)} ready, "
                f"{len(result.errors)} errors, {folders.created} folders created")
    return result


def _destination(request: ImportRequest, cr: CaseRow, folders: FolderResolver) -> int:
    loc = request.location
    if loc.is_fixed:
        return loc.folder_id
    parent = loc.folder_id if loc.kind == ROOT_FOLDER else None
    return folders.resolve(cr.folder_path, request.folder_split_mode, parent)

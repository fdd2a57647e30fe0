"""
import_engine.contracts - Value types that flow through one import run.

ImportRequest is parsed from the wire document; CaseRow is the typed
intermediate produced per decoded row and discarded after commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import config
from import_engine.errors import RequestError

# Location variants
SINGLE_FOLDER = "single_folder"
ROOT_FOLDER   = "root_folder"
TOP_LEVEL     = "top_level"
LOCATIONS = (SINGLE_FOLDER, ROOT_FOLDER, TOP_LEVEL)

# Folder split modes → separator (None = whole string is one segment)
SPLIT_SEPARATORS: dict[str, Optional[str]] = {
    "plain":        None,
    "slash":        "/",
    "dot":          ".",
    "greater_than": ">",
}


@dataclass(frozen=True)
class FieldMapping:
    source_column: str
    target_field: str


@dataclass(frozen=True)
class ImportLocation:
    kind: str
    folder_id: Optional[int] = None

    @property
    def is_fixed(self) -> bool:
        return self.kind == SINGLE_FOLDER


@dataclass
class ImportRequest:
    project_id: int
    file: str | bytes
    template_id: int
    location: ImportLocation
    field_mappings: list[FieldMapping]
    delimiter: str = config.DEFAULT_DELIMITER
    has_headers: bool = True
    encoding: str = config.DEFAULT_ENCODING
    folder_split_mode: str = "plain"

    @classmethod
    def from_dict(cls, data: dict) -> "ImportRequest":
        """
        Build a request from the JSON body of POST /repository/import.
        Raises RequestError on any structural problem.
        """
        if not isinstance(data, dict):
            raise RequestError("request body must be a JSON object")

        try:
            project_id = int(data["projectId"])
            template_id = int(data["templateId"])
        except (KeyError, TypeError, ValueError):
            raise RequestError("projectId and templateId are required integers")

        file = data.get("file")
        if not isinstance(file, str):
            raise RequestError("file must be a string")

        kind = data.get("importLocation", SINGLE_FOLDER)
        if kind not in LOCATIONS:
            raise RequestError(f"unknown importLocation {kind!r}")
        folder_id = data.get("folderId")
        if folder_id is not None:
            try:
                folder_id = int(folder_id)
            except (TypeError, ValueError):
                raise RequestError("folderId must be an integer")
        if kind == SINGLE_FOLDER and folder_id is None:
            raise RequestError("folderId is required for single_folder imports")

        split_mode = data.get("folderSplitMode") or "plain"
        if split_mode not in SPLIT_SEPARATORS:
            raise RequestError(f"unknown folderSplitMode {split_mode!r}")

        mappings = []
        for m in data.get("fieldMappings") or []:
            if not isinstance(m, dict) or not m.get("csvColumn") or not m.get("templateField"):
                raise RequestError("each field mapping needs csvColumn and templateField")
            mappings.append(FieldMapping(str(m["csvColumn"]), str(m["templateField"])))

        return cls(
            project_id=project_id,
            file=file,
            template_id=template_id,
            location=ImportLocation(kind, folder_id),
            field_mappings=mappings,
            delimiter=data.get("delimiter") or config.DEFAULT_DELIMITER,
            has_headers=bool(data.get("hasHeaders", True)),
            encoding=data.get("encoding") or config.DEFAULT_ENCODING,
            folder_split_mode=split_mode,
        )


@dataclass(frozen=True)
class StepDraft:
    step: dict
    expected_result: Optional[dict]
    order: int

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "expectedResult": self.expected_result,
            "order": self.order,
        }


@dataclass
class CaseRow:
    row_number: int
    name: str = ""
    external_id: Optional[int] = None
    field_values: dict[int, Any] = field(default_factory=dict)
    steps: list[StepDraft] = field(default_factory=list)
    tags: Optional[str] = None
    attachments: Optional[str] = None
    issues: Optional[str] = None
    test_runs: Optional[str] = None
    folder_path: str = ""
    folder_id: Optional[int] = None
    workflow_state: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    version: Optional[int] = None
    estimate: Optional[int] = None
    forecast: Optional[int] = None
    automated: bool = False


@dataclass(frozen=True)
class ImportRowError:
    row: int
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row, "field": self.field, "error": self.message}

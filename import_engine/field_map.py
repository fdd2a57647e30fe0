"""
import_engine.field_map - Reserved mapping targets and loose coercions.

Targets listed here fill dedicated CaseRow slots; any other target is
looked up in the template schema and validated as a custom field.
"""

from __future__ import annotations

import re
from typing import Optional

# Mapping target  →  CaseRow attribute
RESERVED_TARGETS: dict[str, str] = {
    "name":          "name",
    "id":            "external_id",
    "estimate":      "estimate",
    "forecast":      "forecast",
    "automated":     "automated",
    "folder":        "folder_path",
    "tags":          "tags",
    "attachments":   "attachments",
    "issues":        "issues",
    "testRuns":      "test_runs",
    "workflowState": "workflow_state",
    "createdAt":     "created_at",
    "createdBy":     "created_by",
    "version":       "version",
    "steps":         "steps",
}

# Relation cells: a mapped column, even when blank, replaces the relation set
RELATION_TARGETS = frozenset({"tags", "attachments", "issues", "testRuns"})

# Reserved slots that take a loosely-parsed integer
LOOSE_INT_TARGETS = frozenset({"id", "estimate", "forecast", "version"})

TRUTHY = frozenset({"true", "1", "yes"})

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def loose_int(raw: Optional[str]) -> Optional[int]:
    """Leading integer of `raw`, or None.  Never raises."""
    if raw is None:
        return None
    m = _LEADING_INT.match(str(raw))
    return int(m.group(1)) if m else None


def is_truthy(raw: Optional[str]) -> bool:
    return str(raw or "").strip().lower() in TRUTHY

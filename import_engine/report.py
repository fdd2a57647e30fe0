"""
import_engine.report - Progress events of an import run.

A run emits zero or more ProgressEvents followed by exactly one
terminal event (CompleteEvent or ErrorEvent).  ProgressReporter
enforces that ordering; the wire encoding lives in the API layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from import_engine.contracts import ImportRowError


@dataclass(frozen=True)
class ProgressEvent:
    imported: int
    total: int

    terminal = False

    def to_dict(self) -> dict:
        return {"imported": self.imported, "total": self.total}


@dataclass(frozen=True)
class CompleteEvent:
    imported_count: int
    errors: list[ImportRowError] = field(default_factory=list)

    terminal = True

    def to_dict(self) -> dict:
        return {
            "complete": True,
            "importedCount": self.imported_count,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    errors: Optional[list[ImportRowError]] = None

    terminal = True

    def to_dict(self) -> dict:
        d: dict = {"error": self.message}
        if self.errors is not None:
            d["errors"] = [e.to_dict() for e in self.errors]
        return d


ImportEvent = Union[ProgressEvent, CompleteEvent, ErrorEvent]


class ProgressReporter:
    """Builds events in order and refuses anything after a terminal event."""

    def __init__(self, total: int = 0):
        self.total = total
        self.finished = False

    def progress(self, imported: int) -> ProgressEvent:
        self._check_open()
        return ProgressEvent(imported, self.total)

    def complete(self, imported_count: int, errors: list[ImportRowError]) -> CompleteEvent:
        self._check_open()
        self.finished = True
        return CompleteEvent(imported_count, list(errors))

    def fail(self, message: str, errors: Optional[list[ImportRowError]] = None) -> ErrorEvent:
        self._check_open()
        self.finished = True
        return ErrorEvent(message, list(errors) if errors is not None else None)

    def _check_open(self):
        if self.finished:
            raise RuntimeError("import run already reported a terminal event")

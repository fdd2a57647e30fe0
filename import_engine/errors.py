"""
import_engine.errors - Exception taxonomy of the import pipeline.

ValidationError subclasses are raised by the field validators and the
folder resolver, caught by the row mapper / Phase 1 and turned into
ImportRowError entries.  Nothing in this module is ever raised past
run_import(); the orchestrator turns everything into events.
"""

from __future__ import annotations


class ImportEngineError(Exception):
    """Base class for all import errors."""


class RequestError(ImportEngineError):
    """The import request document is malformed."""


class DecodeError(ImportEngineError):
    """Raw text cannot be parsed under the given delimiter/encoding."""


class FatalImportError(ImportEngineError):
    """Project, repository, template or default workflow is missing."""


# ── Validation ─────────────────────────────────────────────────────────

class ValidationError(ImportEngineError):
    """A single cell failed validation.  `field` is the display label."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.message = message
        self.field = field


class MissingRequired(ValidationError):
    pass


class TypeCoercionFailure(ValidationError):
    pass


class RangeViolation(ValidationError):
    pass


class UnknownOption(ValidationError):
    def __init__(self, value: str, valid: list[str], field: str = ""):
        super().__init__(
            f"Invalid option {value!r}. Valid options: {', '.join(valid)}",
            field,
        )
        self.value = value
        self.valid = valid


class MalformedURL(ValidationError):
    pass


class EmptyFolderPath(ValidationError):
    def __init__(self, field: str = "Folder"):
        super().__init__("Folder path cannot be empty", field)

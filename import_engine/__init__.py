"""
import_engine - Delimited-text import pipeline for repository cases.

Public API:
    run_import(session, request, acting_user_id) → iterator of events
    ImportRequest.from_dict(body)                → parsed request
"""

from import_engine.contracts import FieldMapping, ImportLocation, ImportRequest   # noqa: F401
from import_engine.importer import run_import                                    # noqa: F401
from import_engine.report import CompleteEvent, ErrorEvent, ProgressEvent        # noqa: F401

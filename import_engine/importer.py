"""
import_engine.importer - Top-level orchestrator.

Runs the two-phase pipeline as a generator of events:

  Phase 1  decode → map/validate every row → resolve folders
           Any validation error rejects the whole run (folders stay).
  Phase 2  per row, in order: reconcile case → version → relations
           Each row commits on its own; a failing row is recorded and
           the run moves on.

The caller drives the generator and owns the session.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from db.models import Project, Repository, User, Workflow, project_workflows
from import_engine.contracts import ImportRequest, ImportRowError
from import_engine.csv_parser import decode_rows
from import_engine.errors import DecodeError, FatalImportError
from import_engine.folders import FolderResolver
from import_engine.reconciler import CaseReconciler, RunContext
from import_engine.relations import RelationSynchronizer
from import_engine.report import ImportEvent, ProgressReporter
from import_engine.validation import validate_rows
from schema.templates import load_template_schema
from services.audit_service import AuditService
from services.search_index import SearchIndexSync

logger = logging.getLogger(__name__)


def run_import(
    session: Session,
    request: ImportRequest,
    acting_user_id: str,
    *,
    search_index: Optional[SearchIndexSync] = None,
    audit_log: Optional[AuditService] = None,
) -> Iterator[ImportEvent]:
    """
    Import the rows of `request` into its project.

    Yields ProgressEvents and ends with exactly one CompleteEvent or
    ErrorEvent.  Never raises for import problems.
    """
    reporter = ProgressReporter()

    # ── Phase 1 ────────────────────────────────────────────────────────
    try:
        ctx = _load_context(session, request, acting_user_id)
        rows = decode_rows(
            request.file, request.delimiter, request.has_headers, request.encoding,
        )
        folders = FolderResolver(
            session, ctx.project.id, ctx.repository.id, acting_user_id,
        )
        result = validate_rows(request, ctx.schema, rows, folders)
        # Folders created while validating are kept even if the run is rejected
        session.commit()
    except FatalImportError as exc:
        session.rollback()
        logger.warning(f"Import into project {request.project_id} aborted: {exc}")
        yield reporter.fail(str(exc))
        return
    except DecodeError as exc:
        session.rollback()
        yield reporter.fail(f"CSV parsing failed: {exc}")
        return
    except Exception as exc:
        session.rollback()
        logger.exception(f"Import into project {request.project_id} failed")
        yield reporter.fail(str(exc) or "Import failed")
        return

    if not result.ok:
        logger.info(f"Import rejected: {len(result.errors)} validation errors")
        yield reporter.fail("Validation failed", result.errors)
        return

    # ── Phase 2 ────────────────────────────────────────────────────────
    reporter.total = len(result.batch)
    imported = 0
    errors: list[ImportRowError] = []

    try:
        ctx.prefetch_orders(session, (cr.folder_id for cr in result.batch))
        reconciler = CaseReconciler(session, ctx)
        relations = RelationSynchronizer(session, ctx.project.id, acting_user_id)
    except Exception as exc:
        session.rollback()
        logger.exception("Import failed before the first row")
        yield reporter.fail(str(exc) or "Import failed")
        return

    for cr in result.batch:
        mark = ctx.mark_orders()
        try:
            with session.begin_nested():
                outcome = reconciler.commit(cr)
                relations.sync(outcome.case, cr, outcome.is_update)
            session.commit()
        except Exception as exc:
            session.rollback()
            ctx.restore_orders(mark)
            logger.warning(f"Row {cr.row_number} ({cr.name!r}) failed to import: {exc}")
            errors.append(ImportRowError(cr.row_number, "General", str(exc)))
        else:
            imported += 1
            _sync_search(search_index, outcome.case.id)
        yield reporter.progress(imported)

    if imported and audit_log is not None:
        audit_log.record_bulk_create(
            "RepositoryCases", imported, ctx.project.id,
            {"source": "csv_import", "templateId": ctx.schema.template_id,
             "failed": len(errors)},
        )

    logger.info(f"Import into project {ctx.project.id} finished: "
                f"{imported}/{reporter.total} imported, {relations.dropped} relation items dropped")
    yield reporter.complete(imported, errors)


# ── Private helpers ────────────────────────────────────────────────────

def _load_context(session: Session, request: ImportRequest, acting_user_id: str) -> RunContext:
    """Load everything a run needs up front.  Raises FatalImportError."""
    project = session.get(Project, request.project_id)
    if project is None or project.is_deleted:
        raise FatalImportError("Project not found")

    repository = (
        session.query(Repository)
        .filter(
            Repository.project_id == project.id,
            Repository.is_active.is_(True),
            Repository.is_deleted.is_(False),
        )
        .first()
    )
    if repository is None:
        raise FatalImportError("Repository not found")

    schema = load_template_schema(session, request.template_id)
    if schema is None:
        raise FatalImportError("Template not found")

    default_workflow = (
        session.query(Workflow)
        .join(project_workflows, project_workflows.c.workflow_id == Workflow.id)
        .filter(
            project_workflows.c.project_id == project.id,
            Workflow.scope == "CASES",
            Workflow.is_default.is_(True),
            Workflow.is_enabled.is_(True),
            Workflow.is_deleted.is_(False),
        )
        .first()
    )
    if default_workflow is None:
        raise FatalImportError("No default workflow found")

    return RunContext(
        project=project,
        repository=repository,
        schema=schema,
        default_workflow=default_workflow,
        acting_user_id=acting_user_id,
        acting_user=session.get(User, acting_user_id),
    )


def _sync_search(search_index: Optional[SearchIndexSync], case_id: int) -> None:
    if search_index is None:
        return
    try:
        search_index.sync(case_id)
    except Exception as exc:
        logger.error(f"Failed to sync case {case_id} to the search index: {exc}")

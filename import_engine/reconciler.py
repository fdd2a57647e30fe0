"""
import_engine.reconciler - Phase 2: write one validated row as a case.

Decides create vs. update from the row's external id, assigns the
per-folder order, resolves soft lookups (workflow state, creator,
created-at) and writes the case, its field values, its steps and a
version snapshot.  Store errors propagate; the orchestrator isolates
them per row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from db.models import (
    CaseFieldValue, Project, Repository, RepositoryCase, Step, User, Workflow,
    project_workflows,
)
from import_engine.contracts import CaseRow
from import_engine.versions import VersionRecorder
from schema.templates import TemplateFieldSchema

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """
    Run-scoped state owned by one import.  Must not be shared across
    runs: the order counters assume nothing else writes to the folders
    while the run is in progress.
    """
    project: Project
    repository: Repository
    schema: TemplateFieldSchema
    default_workflow: Workflow
    acting_user_id: str
    acting_user: Optional[User] = None
    _orders: dict[int, int] = field(default_factory=dict)    # folder id → last order

    def prefetch_orders(self, session: Session, folder_ids: Iterable[int]) -> None:
        """Read the current max order of every destination folder once."""
        for folder_id in set(folder_ids):
            if folder_id in self._orders:
                continue
            db_max = session.query(func.max(RepositoryCase.order)).filter(
                RepositoryCase.folder_id == folder_id,
            ).scalar()
            self._orders[folder_id] = db_max or 0

    def next_order(self, folder_id: int) -> int:
        self._orders[folder_id] = self._orders.get(folder_id, 0) + 1
        return self._orders[folder_id]

    def mark_orders(self) -> dict[int, int]:
        return dict(self._orders)

    def restore_orders(self, mark: dict[int, int]) -> None:
        """Give back orders handed out to a row that was rolled back."""
        self._orders = dict(mark)


@dataclass
class CommitOutcome:
    case: RepositoryCase
    is_update: bool
    state: Workflow
    creator: Optional[User]


def parse_created_at(raw: Optional[str]) -> Optional[datetime]:
    """ISO-8601 date or datetime, or None when absent or unparseable."""
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.strip())
    except ValueError:
        logger.debug(f"Ignoring unparseable createdAt {raw!r}")
        return None


class CaseReconciler:

    def __init__(self, session: Session, ctx: RunContext):
        self._session = session
        self._ctx = ctx
        self._versions = VersionRecorder(
            session, ctx.project, ctx.repository, ctx.schema.template_name,
        )
        self._states: dict[str, Workflow] = {}

    def commit(self, cr: CaseRow) -> CommitOutcome:
        """Create or update the case for `cr` and snapshot it."""
        state = self._resolve_state(cr.workflow_state)
        creator = self._resolve_creator(cr.created_by)
        created_at = parse_created_at(cr.created_at)

        existing = None
        if cr.external_id is not None:
            existing = (
                self._session.query(RepositoryCase)
                .filter(
                    RepositoryCase.id == cr.external_id,
                    RepositoryCase.project_id == self._ctx.project.id,
                )
                .first()
            )

        if existing is not None:
            case = self._update(existing, cr, state)
        else:
            case = self._create(cr, state, creator, created_at)

        self._write_field_values(case, cr)
        self._replace_steps(case, cr, is_update=existing is not None)

        if existing is not None:
            # Updates are authored by whoever runs the import, dated now
            self._versions.record(case, cr, state, self._ctx.acting_user)
        else:
            self._versions.record(case, cr, state, creator, created_at)

        return CommitOutcome(case, existing is not None, state, creator)

    # ── Write paths ────────────────────────────────────────────────────

    def _create(
        self,
        cr: CaseRow,
        state: Workflow,
        creator: Optional[User],
        created_at: Optional[datetime],
    ) -> RepositoryCase:
        case = RepositoryCase(
            project_id=self._ctx.project.id,
            repository_id=self._ctx.repository.id,
            folder_id=cr.folder_id,
            template_id=self._ctx.schema.template_id,
            state_id=state.id,
            creator_id=creator.id if creator else self._ctx.acting_user_id,
            name=cr.name,
            source="MANUAL",
            automated=cr.automated,
            estimate=cr.estimate,
            forecast_manual=cr.forecast,
            order=self._ctx.next_order(cr.folder_id),
            created_at=created_at or datetime.now(timezone.utc),
        )
        if cr.external_id is not None:
            case.id = cr.external_id
        self._session.add(case)
        self._session.flush()
        logger.debug(f"Row {cr.row_number}: created case {case.id}")
        return case

    def _update(self, case: RepositoryCase, cr: CaseRow, state: Workflow) -> RepositoryCase:
        # createdAt, creator and source are never rewritten on update
        case.name = cr.name
        case.folder_id = cr.folder_id
        case.template_id = self._ctx.schema.template_id
        case.state_id = state.id
        case.automated = cr.automated
        case.estimate = cr.estimate
        case.forecast_manual = cr.forecast

        self._session.query(CaseFieldValue).filter(
            CaseFieldValue.test_case_id == case.id,
        ).delete(synchronize_session=False)
        self._session.flush()
        logger.debug(f"Row {cr.row_number}: updated case {case.id}")
        return case

    def _write_field_values(self, case: RepositoryCase, cr: CaseRow) -> None:
        for field_id, value in cr.field_values.items():
            if value is None:
                continue
            self._session.add(CaseFieldValue(
                test_case_id=case.id, field_id=field_id, value=value,
            ))
        self._session.flush()

    def _replace_steps(self, case: RepositoryCase, cr: CaseRow, is_update: bool) -> None:
        if is_update:
            self._session.query(Step).filter(
                Step.test_case_id == case.id,
            ).delete(synchronize_session=False)
        for draft in cr.steps:
            self._session.add(Step(
                test_case_id=case.id,
                step=draft.step,
                expected_result=draft.expected_result,
                order=draft.order,
            ))
        self._session.flush()

    # ── Soft lookups (never raise) ─────────────────────────────────────

    def _resolve_state(self, name: Optional[str]) -> Workflow:
        if not name:
            return self._ctx.default_workflow
        if name not in self._states:
            state = (
                self._session.query(Workflow)
                .join(project_workflows, project_workflows.c.workflow_id == Workflow.id)
                .filter(
                    project_workflows.c.project_id == self._ctx.project.id,
                    Workflow.name == name,
                    Workflow.scope == "CASES",
                    Workflow.is_enabled.is_(True),
                    Workflow.is_deleted.is_(False),
                )
                .first()
            )
            if state is None:
                logger.debug(f"Unknown workflow state {name!r}; using default")
            self._states[name] = state or self._ctx.default_workflow
        return self._states[name]

    def _resolve_creator(self, name_or_email: Optional[str]) -> Optional[User]:
        if not name_or_email:
            return self._ctx.acting_user
        user = (
            self._session.query(User)
            .filter(or_(User.name == name_or_email, User.email == name_or_email))
            .first()
        )
        if user is None:
            logger.debug(f"Unknown creator {name_or_email!r}; using acting user")
            return self._ctx.acting_user
        return user

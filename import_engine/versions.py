"""
import_engine.versions - Append-only version snapshots of a case.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from db.models import RepositoryCase, RepositoryCaseVersion, RepositoryFolder, User, Workflow
from import_engine.contracts import CaseRow


def latest_version(session: Session, case_id: int) -> int:
    """Highest recorded version of a case, 0 when it has none."""
    db_max = session.query(func.max(RepositoryCaseVersion.version)).filter(
        RepositoryCaseVersion.repository_case_id == case_id,
    ).scalar()
    return db_max or 0


class VersionRecorder:

    def __init__(self, session: Session, project, repository, template_name: str):
        self._session = session
        self._project = project
        self._repository = repository
        self._template_name = template_name
        self._folder_names: dict[int, str] = {}

    def record(
        self,
        case: RepositoryCase,
        cr: CaseRow,
        state: Workflow,
        author: Optional[User],
        created_at: Optional[datetime] = None,
    ) -> RepositoryCaseVersion:
        """
        Append a snapshot of `case`.  The version number is the row's
        explicit version when given, else latest + 1.
        """
        number = cr.version if cr.version else latest_version(self._session, case.id) + 1

        snapshot = RepositoryCaseVersion(
            repository_case_id=case.id,
            version=number,
            static_project_id=self._project.id,
            static_project_name=self._project.name,
            project_id=self._project.id,
            repository_id=self._repository.id,
            folder_id=case.folder_id,
            folder_name=self._folder_name(case.folder_id),
            template_id=case.template_id,
            template_name=self._template_name,
            name=case.name,
            state_id=state.id,
            state_name=state.name,
            estimate=case.estimate,
            forecast_manual=case.forecast_manual,
            automated=case.automated,
            creator_id=author.id if author else None,
            creator_name=(author.name or author.email) if author else "",
            steps=[s.to_dict() for s in cr.steps],
            created_at=created_at or datetime.now(timezone.utc),
        )
        self._session.add(snapshot)
        self._session.flush()
        return snapshot

    def _folder_name(self, folder_id: int) -> str:
        if folder_id not in self._folder_names:
            folder = self._session.get(RepositoryFolder, folder_id)
            self._folder_names[folder_id] = folder.name if folder else ""
        return self._folder_names[folder_id]

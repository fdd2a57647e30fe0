"""
import_engine.folders - Resolve folder paths, creating missing folders.

Stateful per run: every (parent, name) pair is looked up in the
database at most once, so rows sharing a path never create duplicates
within the same import.  Not safe against two runs racing on the same
project.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from db.models import RepositoryFolder
from import_engine.contracts import SPLIT_SEPARATORS
from import_engine.errors import EmptyFolderPath

logger = logging.getLogger(__name__)


def split_path(path: str, split_mode: str) -> list[str]:
    """Split a folder path into trimmed, non-empty segments."""
    sep = SPLIT_SEPARATORS.get(split_mode)
    if sep is None:
        segments = [path]
    else:
        segments = path.split(sep)
    return [s.strip() for s in segments if s.strip()]


class FolderResolver:

    def __init__(
        self,
        session: Session,
        project_id: int,
        repository_id: int,
        creator_id: Optional[str] = None,
    ):
        self._session = session
        self._project_id = project_id
        self._repository_id = repository_id
        self._creator_id = creator_id
        self._cache: dict[tuple[Optional[int], str], int] = {}   # (parent, name) → id
        self.created = 0

    def resolve(
        self,
        path: Optional[str],
        split_mode: str = "plain",
        parent_id: Optional[int] = None,
    ) -> int:
        """
        Walk the path segments under `parent_id` and return the leaf
        folder id.  Raises EmptyFolderPath for a blank path.
        """
        segments = split_path(path or "", split_mode)
        if not segments:
            raise EmptyFolderPath()

        current = parent_id
        for name in segments:
            current = self._resolve_segment(current, name)
        return current

    # ── Private helpers ────────────────────────────────────────────────

    def _resolve_segment(self, parent_id: Optional[int], name: str) -> int:
        key = (parent_id, name)
        if key in self._cache:
            return self._cache[key]

        folder = (
            self._session.query(RepositoryFolder)
            .filter(
                RepositoryFolder.project_id == self._project_id,
                RepositoryFolder.repository_id == self._repository_id,
                RepositoryFolder.parent_id.is_(None) if parent_id is None
                else RepositoryFolder.parent_id == parent_id,
                RepositoryFolder.name == name,
                RepositoryFolder.is_deleted.is_(False),
            )
            .order_by(RepositoryFolder.id)
            .first()
        )

        if folder is None:
            folder = RepositoryFolder(
                project_id=self._project_id,
                repository_id=self._repository_id,
                parent_id=parent_id,
                name=name,
                order=self._next_sibling_order(parent_id),
                creator_id=self._creator_id,
            )
            self._session.add(folder)
            self._session.flush()
            self.created += 1
            logger.debug(f"Created folder {name!r} (id={folder.id}, parent={parent_id})")

        self._cache[key] = folder.id
        return folder.id

    def _next_sibling_order(self, parent_id: Optional[int]) -> int:
        q = self._session.query(func.max(RepositoryFolder.order)).filter(
            RepositoryFolder.project_id == self._project_id,
            RepositoryFolder.repository_id == self._repository_id,
        )
        if parent_id is None:
            q = q.filter(RepositoryFolder.parent_id.is_(None))
        else:
            q = q.filter(RepositoryFolder.parent_id == parent_id)
        db_max = q.scalar()
        return (db_max or 0) + 1

"""
import_engine.relations - Sync tags, issues, test runs and attachments.

Clear-then-recreate: on the update path every mapped relation set is
emptied first, then rebuilt from the row.  Each item runs in its own
SAVEPOINT; a failing item is logged and dropped without affecting the
case or the rest of the row.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from db.models import Attachment, Issue, RepositoryCase, Tag, TestRun, TestRunCase
from import_engine.contracts import CaseRow

logger = logging.getLogger(__name__)


# ── Raw-cell parsers ───────────────────────────────────────────────────

def _json_list(value: Optional[str]) -> Optional[list]:
    if not value or not value.lstrip().startswith("["):
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def _comma_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def parse_tags(value: Optional[str]) -> list[str]:
    """JSON array of strings, or a comma-separated list."""
    if not value:
        return []
    items = _json_list(value)
    if items is not None:
        return [t.strip() for t in items if isinstance(t, str) and t.strip()]
    return _comma_list(value)


def parse_issues(value: Optional[str]) -> list[str]:
    """JSON array of names or {name} objects, or a comma-separated list."""
    if not value:
        return []
    items = _json_list(value)
    if items is None:
        return _comma_list(value)
    names = []
    for item in items:
        if isinstance(item, str):
            names.append(item.strip())
        elif isinstance(item, dict) and item.get("name"):
            names.append(str(item["name"]).strip())
    return [n for n in names if n]


def parse_test_runs(value: Optional[str]) -> list[str]:
    """JSON array of names, {name} or {testRun: {name}}, or a comma list."""
    if not value:
        return []
    items = _json_list(value)
    if items is None:
        return _comma_list(value)
    names = []
    for item in items:
        if isinstance(item, str):
            names.append(item.strip())
        elif isinstance(item, dict):
            run = item.get("testRun")
            if isinstance(run, dict) and run.get("name"):
                names.append(str(run["name"]).strip())
            elif item.get("name"):
                names.append(str(item["name"]).strip())
    return [n for n in names if n]


def parse_attachments(value: Optional[str]) -> list[dict]:
    """
    JSON array of attachment objects.  Anything that is not a JSON
    array yields [].  Items without a url are dropped.
    """
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []

    attachments = []
    for att in parsed:
        if not isinstance(att, dict) or not att.get("url"):
            continue
        try:
            size = int(att.get("size") or 0)
        except (TypeError, ValueError):
            size = 0
        attachments.append({
            "url": str(att["url"]),
            "name": att.get("name") or "Untitled",
            "note": att.get("note") or None,
            "size": size,
            "mime_type": att.get("mimeType") or "application/octet-stream",
        })
    return attachments


# ── Synchronizer ───────────────────────────────────────────────────────

class RelationSynchronizer:

    def __init__(self, session: Session, project_id: int, acting_user_id: Optional[str]):
        self._session = session
        self._project_id = project_id
        self._acting_user_id = acting_user_id
        self.dropped = 0     # items that failed and were skipped

    def sync(self, case: RepositoryCase, cr: CaseRow, is_update: bool) -> None:
        """Reconcile every relation the row carries.  Unmapped relations are left alone."""
        if cr.tags is not None:
            self._sync_tags(case, parse_tags(cr.tags), is_update)
        if cr.issues is not None:
            self._sync_issues(case, parse_issues(cr.issues), is_update)
        if cr.attachments is not None:
            self._sync_attachments(case, parse_attachments(cr.attachments), is_update)
        if cr.test_runs is not None:
            self._sync_test_runs(case, parse_test_runs(cr.test_runs), is_update)

    # ── Per-relation helpers ───────────────────────────────────────────

    def _sync_tags(self, case: RepositoryCase, names: list[str], is_update: bool):
        if is_update:
            case.tags = []
            self._session.flush()

        for name in names:
            def link(name=name):
                tag = (
                    self._session.query(Tag)
                    .filter(Tag.name == name, Tag.is_deleted.is_(False))
                    .first()
                )
                if tag is None:
                    tag = Tag(name=name)
                    self._session.add(tag)
                if tag not in case.tags:
                    case.tags.append(tag)
            self._isolated(case, "tag", name, link)

    def _sync_issues(self, case: RepositoryCase, names: list[str], is_update: bool):
        if is_update:
            case.issues = []
            self._session.flush()

        for name in names:
            def link(name=name):
                issue = (
                    self._session.query(Issue)
                    .filter(Issue.name == name, Issue.is_deleted.is_(False))
                    .first()
                )
                if issue is None:
                    logger.debug(f"Case {case.id}: no issue named {name!r}; skipped")
                    return
                if issue not in case.issues:
                    case.issues.append(issue)
            self._isolated(case, "issue", name, link)

    def _sync_attachments(self, case: RepositoryCase, attachments: list[dict], is_update: bool):
        if is_update:
            self._session.query(Attachment).filter(
                Attachment.test_case_id == case.id,
            ).delete(synchronize_session=False)
            self._session.flush()

        for att in attachments:
            def create(att=att):
                self._session.add(Attachment(
                    test_case_id=case.id,
                    created_by_id=self._acting_user_id,
                    **att,
                ))
            self._isolated(case, "attachment", att["url"], create)

    def _sync_test_runs(self, case: RepositoryCase, names: list[str], is_update: bool):
        if is_update:
            self._session.query(TestRunCase).filter(
                TestRunCase.repository_case_id == case.id,
            ).delete(synchronize_session=False)
            self._session.flush()

        for name in names:
            def link(name=name):
                run = (
                    self._session.query(TestRun)
                    .filter(
                        TestRun.name == name,
                        TestRun.project_id == self._project_id,
                        TestRun.is_deleted.is_(False),
                    )
                    .first()
                )
                if run is None:
                    logger.debug(f"Case {case.id}: no test run named {name!r}; skipped")
                    return
                self._session.add(TestRunCase(
                    test_run_id=run.id, repository_case_id=case.id, order=0,
                ))
            self._isolated(case, "test run", name, link)

    def _isolated(self, case: RepositoryCase, kind: str, label: Any, fn: Callable[[], None]):
        """Run one relation write in a SAVEPOINT; log and drop on failure."""
        try:
            with self._session.begin_nested():
                fn()
                self._session.flush()
        except Exception as exc:
            self.dropped += 1
            logger.warning(f"Case {case.id}: failed to link {kind} {label!r}: {exc}")

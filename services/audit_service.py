"""
services.audit_service - Bulk-operation audit trail.

Best-effort: an audit write that fails is logged and rolled back, it
never fails the operation being audited.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from db.models import AuditEvent

logger = logging.getLogger(__name__)


class AuditService:

    def __init__(self, session: Session, user_id: Optional[str] = None):
        self._session = session
        self._user_id = user_id

    def record_bulk_create(
        self,
        entity_type: str,
        count: int,
        project_id: Optional[int],
        metadata: Optional[dict] = None,
    ) -> Optional[AuditEvent]:
        """Write one BULK_CREATE event and commit it.  Returns None on failure."""
        try:
            event = AuditEvent(
                action="BULK_CREATE",
                entity_type=entity_type,
                count=count,
                project_id=project_id,
                user_id=self._user_id,
                metadata_json=metadata or {},
            )
            self._session.add(event)
            self._session.commit()
            return event
        except Exception as exc:
            self._session.rollback()
            logger.error(f"Audit log write failed for {entity_type} x{count}: {exc}")
            return None

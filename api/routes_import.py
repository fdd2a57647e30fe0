"""
api.routes_import - /api/v1/repository/import endpoint.

Accepts the import request as JSON and streams the run's events back
as server-sent events, one `data: <json>` frame per event.
"""

import json
import logging

from flask import Response, abort, request, stream_with_context

import config
from api import api_bp
from db import User, get_session, session_scope
from import_engine import ImportRequest, run_import
from services.audit_service import AuditService
from services.search_index import LoggingSearchIndex

logger = logging.getLogger(__name__)


def encode_event(event) -> str:
    """Frame one import event for the SSE stream."""
    return f"data: {json.dumps(event.to_dict())}\n\n"


def _acting_user_id() -> str:
    """The user named by the auth header; 401 when absent or unknown."""
    user_id = request.headers.get(config.USER_HEADER, "").strip()
    if not user_id:
        abort(401)
    with session_scope() as session:
        if session.get(User, user_id) is None:
            abort(401)
    return user_id


@api_bp.route("/repository/import", methods=["POST"])
def api_import_cases():
    """
    POST /api/v1/repository/import

    Body: {projectId, file, delimiter, hasHeaders, encoding, templateId,
           importLocation, folderId, fieldMappings, folderSplitMode}
    Header: X-User-Id (acting user)
    """
    user_id = _acting_user_id()
    # RequestError → 400 via api.errors
    import_request = ImportRequest.from_dict(request.get_json(silent=True))

    logger.info(f"User {user_id} importing into project {import_request.project_id}")

    def generate():
        session = get_session()
        try:
            events = run_import(
                session, import_request, user_id,
                search_index=LoggingSearchIndex(),
                audit_log=AuditService(session, user_id),
            )
            for event in events:
                yield encode_event(event)
        finally:
            session.close()

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )

"""
api.routes_schema - /api/v1/templates/* endpoints.

Expose template fields and the reserved mapping targets so an import
wizard can offer column → field choices without knowing the schema.
"""

from flask import jsonify

from api import api_bp
from db import session_scope
from import_engine.field_map import RESERVED_TARGETS
from schema.templates import load_template_schema


@api_bp.route("/templates/<int:template_id>/fields")
def template_fields(template_id: int):
    """List the custom fields of a template, in template order."""
    with session_scope() as session:
        schema = load_template_schema(session, template_id)
    if schema is None:
        return jsonify({"error": "template not found"}), 404
    return jsonify({
        "templateId": schema.template_id,
        "templateName": schema.template_name,
        "fields": [
            {
                "id": fd.id,
                "systemName": fd.system_name,
                "displayName": fd.display_name,
                "type": fd.type_tag,
                "isRequired": fd.is_required,
                "options": [o.name for o in fd.options],
            }
            for fd in schema.fields
        ],
    })


@api_bp.route("/import/targets")
def import_targets():
    """List the reserved system mapping targets."""
    return jsonify(sorted(RESERVED_TARGETS))

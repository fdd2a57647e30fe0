"""
schema - Template field schema and field type tags.

Public API:
    templates.load_template_schema(session, template_id)
    templates.TemplateFieldSchema / FieldDefinition / FieldChoice
    field_types.*  → type tag constants
"""

from schema import field_types                              # noqa: F401
from schema.templates import (                               # noqa: F401
    FieldChoice,
    FieldDefinition,
    TemplateFieldSchema,
    load_template_schema,
)

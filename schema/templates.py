"""
schema.templates - Template field schema, read from the database.

A template is the per-project set of custom fields a case may carry.
The importer works on the frozen TemplateFieldSchema below instead of
ORM rows so validation never triggers lazy loads mid-row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from db.models import Template


@dataclass(frozen=True)
class FieldChoice:
    id: int
    name: str


@dataclass(frozen=True)
class FieldDefinition:
    id: int
    system_name: str
    display_name: str
    type_tag: str
    is_required: bool = False
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    options: tuple[FieldChoice, ...] = ()

    def matches(self, target: str) -> bool:
        """Case-insensitive match on system or display name."""
        t = target.strip().lower()
        return t in (self.system_name.lower(), self.display_name.lower())


@dataclass(frozen=True)
class TemplateFieldSchema:
    template_id: int
    template_name: str
    fields: tuple[FieldDefinition, ...] = ()

    def find(self, target: str) -> Optional[FieldDefinition]:
        for fd in self.fields:
            if fd.matches(target):
                return fd
        return None

    @property
    def required(self) -> list[FieldDefinition]:
        return [fd for fd in self.fields if fd.is_required]


def load_template_schema(session: Session, template_id: int) -> Optional[TemplateFieldSchema]:
    """Return the schema for a template, or None if it does not exist."""
    template = session.get(Template, template_id)
    if template is None or template.is_deleted:
        return None

    fields = []
    for link in template.case_fields:
        cf = link.case_field
        fields.append(FieldDefinition(
            id=cf.id,
            system_name=cf.system_name,
            display_name=cf.display_name,
            type_tag=cf.type_tag,
            is_required=bool(cf.is_required),
            min_value=cf.min_value,
            max_value=cf.max_value,
            options=tuple(FieldChoice(o.id, o.name) for o in cf.options),
        ))

    return TemplateFieldSchema(
        template_id=template.id,
        template_name=template.template_name,
        fields=tuple(fields),
    )

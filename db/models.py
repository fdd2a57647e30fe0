"""
db.models - SQLAlchemy ORM declarations.

Tables
------
projects / repositories   - containers a case lives in.  A project owns
                            one active repository.
templates / case_fields   - per-project field schema.  Field values are
                            stored EAV-style in case_field_values with a
                            JSON payload, so new field types never need
                            an ALTER TABLE.
repository_folders        - folder tree (parent_id NULL = top level).
repository_cases          - one row per test case.
repository_case_versions  - append-only snapshots of a case.
steps                     - ordered steps of a case.
tags / issues / test_runs - relation targets, linked through association
                            tables or (test runs) an order-bearing row.
attachments               - files referenced by URL.
audit_events              - bulk-operation audit trail.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON, BigInteger, Boolean, Column, DateTime, Float, ForeignKey, Index,
    Integer, String, Table, Text, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


# ── Association tables ────────────────────────────────────────────────

case_tags = Table(
    "case_tags", Base.metadata,
    Column("case_id", ForeignKey("repository_cases.id", ondelete="CASCADE"),
           primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

case_issues = Table(
    "case_issues", Base.metadata,
    Column("case_id", ForeignKey("repository_cases.id", ondelete="CASCADE"),
           primary_key=True),
    Column("issue_id", ForeignKey("issues.id", ondelete="CASCADE"),
           primary_key=True),
)

project_workflows = Table(
    "project_workflows", Base.metadata,
    Column("project_id", ForeignKey("projects.id", ondelete="CASCADE"),
           primary_key=True),
    Column("workflow_id", ForeignKey("workflows.id", ondelete="CASCADE"),
           primary_key=True),
)


# ── People & containers ───────────────────────────────────────────────

class User(Base):
    __tablename__ = "users"

    id    = Column(String(64), primary_key=True)
    name  = Column(String(200), nullable=False, default="", index=True)
    email = Column(String(300), nullable=False, default="", index=True)


class Project(Base):
    __tablename__ = "projects"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    name       = Column(String(200), nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)

    workflows = relationship("Workflow", secondary=project_workflows,
                             back_populates="projects")


class Repository(Base):
    __tablename__ = "repositories"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    is_active  = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)


class Workflow(Base):
    """A workflow state a case can be in (e.g. Draft, Ready, Deprecated)."""
    __tablename__ = "workflows"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    name       = Column(String(200), nullable=False)
    scope      = Column(String(20), nullable=False, default="CASES")
    is_default = Column(Boolean, nullable=False, default=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    projects = relationship("Project", secondary=project_workflows,
                            back_populates="workflows")


# ── Templates & fields ────────────────────────────────────────────────

class Template(Base):
    __tablename__ = "templates"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    template_name = Column(String(200), nullable=False)
    is_deleted    = Column(Boolean, nullable=False, default=False)

    case_fields = relationship(
        "TemplateCaseField", back_populates="template",
        order_by="TemplateCaseField.order", cascade="all, delete-orphan",
    )


class CaseField(Base):
    __tablename__ = "case_fields"

    id           = Column(Integer, primary_key=True, autoincrement=True)
    system_name  = Column(String(200), nullable=False)
    display_name = Column(String(200), nullable=False)
    type_tag     = Column(String(50), nullable=False)     # see schema.field_types
    is_required  = Column(Boolean, nullable=False, default=False)
    min_value    = Column(Float, nullable=True)
    max_value    = Column(Float, nullable=True)

    options = relationship(
        "FieldOption", back_populates="case_field",
        order_by="FieldOption.order", cascade="all, delete-orphan",
    )


class FieldOption(Base):
    __tablename__ = "field_options"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    case_field_id = Column(Integer, ForeignKey("case_fields.id", ondelete="CASCADE"),
                           nullable=False, index=True)
    name          = Column(String(200), nullable=False)
    order         = Column(Integer, nullable=False, default=0)

    case_field = relationship("CaseField", back_populates="options")


class TemplateCaseField(Base):
    __tablename__ = "template_case_fields"

    template_id   = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"),
                           primary_key=True)
    case_field_id = Column(Integer, ForeignKey("case_fields.id", ondelete="CASCADE"),
                           primary_key=True)
    order         = Column(Integer, nullable=False, default=0)

    template   = relationship("Template", back_populates="case_fields")
    case_field = relationship("CaseField", lazy="joined")


# ── Folders & cases ───────────────────────────────────────────────────

class RepositoryFolder(Base):
    __tablename__ = "repository_folders"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    project_id    = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"),
                           nullable=False)
    repository_id = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"),
                           nullable=False)
    parent_id     = Column(Integer, ForeignKey("repository_folders.id"),
                           nullable=True)
    name          = Column(String(300), nullable=False)
    order         = Column(Integer, nullable=False, default=0)
    creator_id    = Column(String(64), ForeignKey("users.id"), nullable=True)
    is_deleted    = Column(Boolean, nullable=False, default=False)
    created_at    = Column(DateTime, default=_utcnow)

    __table_args__ = (
        Index("ix_folder_lookup", "project_id", "repository_id", "parent_id", "name"),
    )


class RepositoryCase(Base):
    __tablename__ = "repository_cases"

    id              = Column(Integer, primary_key=True, autoincrement=True)
    project_id      = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"),
                             nullable=False, index=True)
    repository_id   = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"),
                             nullable=False)
    folder_id       = Column(Integer, ForeignKey("repository_folders.id"),
                             nullable=False, index=True)
    template_id     = Column(Integer, ForeignKey("templates.id"), nullable=False)
    state_id        = Column(Integer, ForeignKey("workflows.id"), nullable=False)
    creator_id      = Column(String(64), ForeignKey("users.id"), nullable=True)
    name            = Column(String(500), nullable=False)
    source          = Column(String(20), nullable=False, default="MANUAL")
    automated       = Column(Boolean, nullable=False, default=False)
    estimate        = Column(Integer, nullable=True)
    forecast_manual = Column(Integer, nullable=True)
    order           = Column(Integer, nullable=False, default=0)
    is_deleted      = Column(Boolean, nullable=False, default=False)
    created_at      = Column(DateTime, default=_utcnow)

    tags   = relationship("Tag", secondary=case_tags)
    issues = relationship("Issue", secondary=case_issues)


class CaseFieldValue(Base):
    __tablename__ = "case_field_values"

    id           = Column(Integer, primary_key=True, autoincrement=True)
    test_case_id = Column(Integer, ForeignKey("repository_cases.id", ondelete="CASCADE"),
                          nullable=False, index=True)
    field_id     = Column(Integer, ForeignKey("case_fields.id"), nullable=False)
    value        = Column(JSON, nullable=True)


class Step(Base):
    __tablename__ = "steps"

    id              = Column(Integer, primary_key=True, autoincrement=True)
    test_case_id    = Column(Integer, ForeignKey("repository_cases.id", ondelete="CASCADE"),
                             nullable=False, index=True)
    step            = Column(JSON, nullable=False)
    expected_result = Column(JSON, nullable=True)
    order           = Column(Integer, nullable=False, default=0)


class RepositoryCaseVersion(Base):
    """
    Immutable snapshot of a case.  Project/template/state names are
    copied in so the history survives renames and deletions.
    """
    __tablename__ = "repository_case_versions"

    id                  = Column(Integer, primary_key=True, autoincrement=True)
    repository_case_id  = Column(Integer, ForeignKey("repository_cases.id", ondelete="CASCADE"),
                                 nullable=False, index=True)
    version             = Column(Integer, nullable=False)
    static_project_id   = Column(Integer, nullable=False)
    static_project_name = Column(String(200), nullable=False, default="")
    project_id          = Column(Integer, nullable=False)
    repository_id       = Column(Integer, nullable=False)
    folder_id           = Column(Integer, nullable=False)
    folder_name         = Column(String(300), nullable=False, default="")
    template_id         = Column(Integer, nullable=False)
    template_name       = Column(String(200), nullable=False, default="")
    name                = Column(String(500), nullable=False)
    state_id            = Column(Integer, nullable=False)
    state_name          = Column(String(200), nullable=False, default="")
    estimate            = Column(Integer, nullable=True)
    forecast_manual     = Column(Integer, nullable=True)
    automated           = Column(Boolean, nullable=False, default=False)
    creator_id          = Column(String(64), nullable=True)
    creator_name        = Column(String(300), nullable=False, default="")
    steps               = Column(JSON, nullable=True)
    created_at          = Column(DateTime, default=_utcnow)

    __table_args__ = (
        Index("ix_case_version", "repository_case_id", "version"),
    )


# ── Relation targets ──────────────────────────────────────────────────

class Tag(Base):
    __tablename__ = "tags"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    name       = Column(String(200), nullable=False, index=True)
    is_deleted = Column(Boolean, nullable=False, default=False)


class Issue(Base):
    __tablename__ = "issues"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    name       = Column(String(300), nullable=False, index=True)
    title      = Column(String(500), nullable=False, default="")
    is_deleted = Column(Boolean, nullable=False, default=False)


class TestRun(Base):
    __tablename__ = "test_runs"
    __test__ = False     # keep pytest from collecting the model

    id         = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    name       = Column(String(300), nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)


class TestRunCase(Base):
    __tablename__ = "test_run_cases"
    __test__ = False

    id                 = Column(Integer, primary_key=True, autoincrement=True)
    test_run_id        = Column(Integer, ForeignKey("test_runs.id", ondelete="CASCADE"),
                                nullable=False)
    repository_case_id = Column(Integer, ForeignKey("repository_cases.id", ondelete="CASCADE"),
                                nullable=False, index=True)
    order              = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("test_run_id", "repository_case_id", name="uq_run_case"),
    )


class Attachment(Base):
    __tablename__ = "attachments"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    test_case_id  = Column(Integer, ForeignKey("repository_cases.id", ondelete="CASCADE"),
                           nullable=False, index=True)
    url           = Column(Text, nullable=False)
    name          = Column(String(300), nullable=False, default="Untitled")
    note          = Column(Text, nullable=True)
    size          = Column(BigInteger, nullable=False, default=0)
    mime_type     = Column(String(200), nullable=False,
                           default="application/octet-stream")
    created_by_id = Column(String(64), ForeignKey("users.id"), nullable=True)
    created_at    = Column(DateTime, default=_utcnow)


# ── Audit ──────────────────────────────────────────────────────────────

class AuditEvent(Base):
    __tablename__ = "audit_events"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    action      = Column(String(50), nullable=False)
    entity_type = Column(String(100), nullable=False)
    count       = Column(Integer, nullable=False, default=1)
    project_id  = Column(Integer, nullable=True, index=True)
    user_id     = Column(String(64), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at  = Column(DateTime, default=_utcnow)

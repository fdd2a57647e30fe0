"""
db - Database layer.

Public API:
    init_db()       → create engine + tables
    get_session()   → new Session
    session_scope() → context-managed read session
    ORM models      → see db.models
"""

from db.engine import init_db, get_session, session_scope   # noqa: F401
from db.models import (                              # noqa: F401
    Base,
    Attachment,
    AuditEvent,
    CaseField,
    CaseFieldValue,
    FieldOption,
    Issue,
    Project,
    Repository,
    RepositoryCase,
    RepositoryCaseVersion,
    RepositoryFolder,
    Step,
    Tag,
    Template,
    TemplateCaseField,
    TestRun,
    TestRunCase,
    User,
    Workflow,
)

"""
services - Collaborators the import engine reports to.
"""

from services.audit_service import AuditService                          # noqa: F401
from services.search_index import LoggingSearchIndex, SearchIndexSync    # noqa: F401

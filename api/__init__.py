"""
api - HTTP surface of the case repository.

One Blueprint under /api/v1: the streaming import endpoint plus the
read-only schema lookups an import wizard needs to build its mappings.
"""

from flask import Blueprint

api_bp = Blueprint("api", __name__, url_prefix="/api/v1")

# Route modules register themselves on import
from api import routes_import     # noqa: F401, E402
from api import routes_schema     # noqa: F401, E402
from api import errors            # noqa: F401, E402

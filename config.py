"""
casedb - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("CASEDB_DB", f"sqlite:///{BASE_DIR / 'casedb.sqlite'}")

# ── Server ─────────────────────────────────────────────────────────────
HOST   = os.environ.get("CASEDB_HOST", "0.0.0.0")
PORT   = int(os.environ.get("CASEDB_PORT", "5000"))
DEBUG  = os.environ.get("CASEDB_DEBUG", "0") == "1"
SECRET = os.environ.get("CASEDB_SECRET", "casedb-dev-key-change-in-prod")

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL  = os.environ.get("CASEDB_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# ── Import defaults ────────────────────────────────────────────────────
DEFAULT_DELIMITER = os.environ.get("CASEDB_DEFAULT_DELIMITER", ",")
DEFAULT_ENCODING  = os.environ.get("CASEDB_DEFAULT_ENCODING", "utf-8")

# Header that carries the acting user id (set by the auth proxy)
USER_HEADER = "X-User-Id"

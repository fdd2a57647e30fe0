"""
services.search_index - Search-index synchronisation hook.

The importer calls sync(case_id) after every committed case.  Failures
are the caller's to log; they never fail an import.  LoggingSearchIndex
is the default when no search backend is configured.
"""

from __future__ import annotations

import abc
import logging

logger = logging.getLogger(__name__)


class SearchIndexSync(abc.ABC):
    """Interface: push one case to the search backend."""

    @abc.abstractmethod
    def sync(self, case_id: int) -> None:
        ...


class LoggingSearchIndex(SearchIndexSync):

    def __init__(self):
        self.synced: list[int] = []

    def sync(self, case_id: int) -> None:
        self.synced.append(case_id)
        logger.debug(f"Search index sync queued for case {case_id}")

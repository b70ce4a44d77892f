"""
Keyed cache of the last aggregation result.

``sli parse`` stores the merged items of a run under a session id so that a
later ``sli build`` (after missing master data was entered) can resume
without parsing the invoices again. Entries are overwritten by each new
parse, removed by ``sli reset`` and expire after a configurable number of
hours.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import List

from database.database import DatabaseManager
from .exceptions import AggregationCacheError
from .models import MergedItem


logger = logging.getLogger(__name__)

DEFAULT_SESSION = 'default'


class AggregationCache:
    """Aggregation results persisted in the ``aggregation_cache`` table."""

    def __init__(self, db_manager: DatabaseManager, retention_hours: float = 24):
        self.db_manager = db_manager
        self.retention = timedelta(hours=retention_hours)

    def store(self, merged: List[MergedItem], session_id: str = DEFAULT_SESSION) -> None:
        payload = json.dumps([item.to_dict() for item in merged])
        self.db_manager.save_aggregation(session_id, payload)
        logger.info(f"Cached {len(merged)} merged items for session '{session_id}'")

    def load(self, session_id: str = DEFAULT_SESSION) -> List[MergedItem]:
        """
        Return the cached merged items of a session.

        Raises:
            AggregationCacheError: If nothing is cached for the session, the
                entry has expired (it is removed), or the payload is unreadable
        """
        cached = self.db_manager.load_aggregation(session_id)
        if cached is None:
            raise AggregationCacheError(
                f"No cached aggregation for session '{session_id}'; run 'sli parse' first",
                session_id=session_id
            )

        payload, created_at = cached
        if datetime.now() - created_at > self.retention:
            self.db_manager.clear_aggregation(session_id)
            raise AggregationCacheError(
                f"Cached aggregation for session '{session_id}' has expired",
                session_id=session_id
            )

        try:
            merged = [MergedItem.from_dict(data) for data in json.loads(payload)]
        except (ValueError, KeyError, TypeError) as e:
            raise AggregationCacheError(
                f"Cached aggregation for session '{session_id}' is unreadable: {e}",
                session_id=session_id
            ) from e

        logger.debug(f"Loaded {len(merged)} merged items for session '{session_id}'")
        return merged

    def clear(self, session_id: str = DEFAULT_SESSION) -> bool:
        removed = self.db_manager.clear_aggregation(session_id)
        if removed:
            logger.info(f"Cleared cached aggregation for session '{session_id}'")
        return removed

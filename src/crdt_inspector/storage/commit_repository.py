"""Loads the commit history with per-commit change counts."""

import json
import logging
from typing import Any, Dict, List, Optional

from ..errors import QueryFailure
from ..models import Commit, CommitInfo, HybridDateTime
from .session import StoreSession

logger = logging.getLogger(__name__)

# The change count is a correlated subquery so no ChangeEntities payload
# rows are read while listing commits.
COMMITS_WITH_COUNTS_SQL = """
    SELECT c.Id, c.Hash, c.ParentHash, c.ClientId, c.DateTime, c.Counter, c.Metadata,
           (SELECT COUNT(*) FROM ChangeEntities ce WHERE ce.CommitId = c.Id) AS ChangeCount
    FROM Commits c
    ORDER BY c.DateTime DESC, c.Counter DESC, c.Id DESC
"""


def _parse_metadata(raw: Optional[str], commit_id: str) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Unreadable metadata on commit {commit_id}: {e}")
        return {}
    return value if isinstance(value, dict) else {"value": value}


class CommitRepository:
    """Reads commits and their change counts in one query per session.

    Holds no state between calls. Returned commits are detached from the
    session, so the caller may close it as soon as this returns.
    """

    def load_commits(self, session: StoreSession) -> List[CommitInfo]:
        """Load every commit, newest first, with its change count.

        Args:
            session: Open store session

        Returns:
            List of CommitInfo ordered by hybrid timestamp descending

        Raises:
            QueryFailure: If the query fails or a row holds an invalid timestamp
        """
        rows = session.execute(COMMITS_WITH_COUNTS_SQL)

        commit_infos: List[CommitInfo] = []
        for row in rows:
            commit_id = str(row["Id"])
            try:
                timestamp = HybridDateTime.parse(str(row["DateTime"]), row["Counter"])
            except (TypeError, ValueError) as e:
                raise QueryFailure(
                    f"Invalid timestamp on commit {commit_id}: {row['DateTime']!r}"
                ) from e

            commit = Commit(
                id=commit_id,
                hash=row["Hash"] or "",
                hybrid_date_time=timestamp,
                parent_hash=row["ParentHash"] or "",
                client_id=row["ClientId"] or "",
                metadata=_parse_metadata(row["Metadata"], commit_id),
            )
            commit_infos.append(CommitInfo(commit, int(row["ChangeCount"])))

        # Text ordering in SQL breaks down across mixed UTC offsets
        commit_infos.sort(
            key=lambda info: (info.commit.hybrid_date_time, info.commit.id),
            reverse=True,
        )
        logger.debug(f"Loaded {len(commit_infos)} commits")
        return commit_infos

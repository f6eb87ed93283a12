"""Loads a commit's changes on demand."""

import json
import logging
from typing import List, Optional

from ..change_types import TYPE_DISCRIMINATOR_KEY, ChangeTypeRegistry
from ..errors import QueryFailure
from ..models import ChangeEntity, ChangePayload, Commit
from .session import SessionFactory

logger = logging.getLogger(__name__)

CHANGES_FOR_COMMIT_SQL = """
    SELECT ce."Index", ce.CommitId, ce.EntityId, ce.Change
    FROM ChangeEntities ce
    WHERE ce.CommitId = ?
    ORDER BY ce."Index" ASC
"""


class ChangeLoader:
    """Fills ``Commit.change_entities`` from the store the first time it is asked.

    This is the only code that writes to a commit's change list. A commit
    whose list already holds entries is returned untouched without a query.
    The check-then-fill is not atomic; callers that may expand the same
    commit from several threads must serialise access (``CommitNode`` does).
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        registry: Optional[ChangeTypeRegistry] = None,
    ):
        self.session_factory = session_factory
        self.registry = registry or ChangeTypeRegistry()

    def load_changes(self, commit: Commit) -> List[ChangeEntity]:
        """Return the commit's changes ordered by index, loading them if needed.

        Args:
            commit: Commit whose changes are requested

        Returns:
            The commit's own ``change_entities`` list

        Raises:
            StorageUnavailable: If a session cannot be opened
            QueryFailure: If the query fails or a payload cannot be decoded
        """
        if len(commit.change_entities) > 0:
            return commit.change_entities

        with self.session_factory.open_session() as session:
            rows = session.execute(CHANGES_FOR_COMMIT_SQL, (commit.id,))

        changes = [self._decode_row(row, commit) for row in rows]
        commit.change_entities.extend(changes)
        logger.debug(f"Loaded {len(changes)} changes for commit {commit.short_hash}")
        return commit.change_entities

    def _decode_row(self, row, commit: Commit) -> ChangeEntity:
        index = int(row["Index"])
        try:
            body = json.loads(row["Change"] or "")
        except json.JSONDecodeError as e:
            raise QueryFailure(
                f"Change {index} of commit {commit.short_hash} is not valid JSON: {e}"
            ) from e
        if not isinstance(body, dict):
            raise QueryFailure(
                f"Change {index} of commit {commit.short_hash} is not a JSON object"
            )

        data = dict(body)
        kind = self.registry.resolve(data.pop(TYPE_DISCRIMINATOR_KEY, None))
        return ChangeEntity(
            index=index,
            commit_id=str(row["CommitId"]),
            entity_id=str(row["EntityId"] or ""),
            change=ChangePayload(kind=kind, data=data),
        )

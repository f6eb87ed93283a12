"""Two-level commit/change tree consumed by the presentation layer.

Commit nodes know whether they have children from the change count the
store reported, so a view can show an expander before any change payload
is read. The changes are loaded the first time ``children`` is accessed
and cached on the node from then on.
"""

import enum
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from .models import ChangeEntity, Commit, CommitInfo

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ChangeLoaderFn = Callable[[Commit], Sequence[ChangeEntity]]


class LoadState(enum.Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"


class TreeNode(ABC):
    """Read-only accessors the presentation layer uses for every node."""

    @property
    @abstractmethod
    def has_children(self) -> bool:
        pass

    @property
    @abstractmethod
    def children(self) -> Optional[List["TreeNode"]]:
        pass

    @property
    @abstractmethod
    def label(self) -> str:
        pass

    @property
    @abstractmethod
    def date_display(self) -> str:
        pass

    @property
    @abstractmethod
    def identifier(self) -> str:
        pass


class ChangeNode(TreeNode):
    """Leaf node wrapping one change."""

    def __init__(self, entity: ChangeEntity):
        self.entity = entity

    @property
    def has_children(self) -> bool:
        return False

    @property
    def children(self) -> Optional[List[TreeNode]]:
        return None

    @property
    def label(self) -> str:
        return self.entity.change.kind.display_name

    @property
    def date_display(self) -> str:
        return ""

    @property
    def identifier(self) -> str:
        return ""

    def __repr__(self) -> str:
        return f"ChangeNode(index={self.entity.index}, kind={self.label})"


class CommitNode(TreeNode):
    """Node wrapping a commit whose changes are loaded on first expansion.

    The loader runs at most once per node. A per-node lock makes the first
    access atomic, so two threads expanding the same node trigger a single
    load. A failed load resets the state and the error reaches the caller.
    """

    def __init__(
        self,
        commit: Commit,
        change_count: int,
        loader: ChangeLoaderFn,
        date_format: str = DEFAULT_DATE_FORMAT,
    ):
        self.commit = commit
        self.change_count = change_count
        self.date_format = date_format
        self._loader = loader
        self._children: Optional[List[TreeNode]] = None
        self._state = LoadState.NOT_LOADED
        self._lock = threading.RLock()

    @property
    def load_state(self) -> LoadState:
        return self._state

    @property
    def has_children(self) -> bool:
        return self.change_count > 0

    @property
    def children(self) -> Optional[List[TreeNode]]:
        if not self.has_children:
            return None
        if self._state is LoadState.LOADED:
            return self._children

        with self._lock:
            if self._state is LoadState.LOADED:
                return self._children
            if self._state is LoadState.LOADING:
                raise RuntimeError(
                    f"Re-entrant expansion of commit {self.commit.short_hash}"
                )

            self._state = LoadState.LOADING
            try:
                changes = self._loader(self.commit)
            except Exception:
                self._state = LoadState.NOT_LOADED
                raise

            if len(changes) != self.change_count:
                logger.warning(
                    f"Commit {self.commit.short_hash} reported {self.change_count} "
                    f"changes but {len(changes)} were loaded"
                )
            self._children = [ChangeNode(change) for change in changes]
            self._state = LoadState.LOADED
            return self._children

    @property
    def label(self) -> str:
        return f"{self.change_count} changes"

    @property
    def date_display(self) -> str:
        return self.commit.hybrid_date_time.format(self.date_format)

    @property
    def identifier(self) -> str:
        return self.commit.hash

    def __repr__(self) -> str:
        return (
            f"CommitNode(hash={self.commit.short_hash}, "
            f"change_count={self.change_count}, state={self._state.value})"
        )


class HierarchyBuilder:
    """Projects commit infos into commit nodes wired to a change loader."""

    def __init__(self, loader: ChangeLoaderFn, date_format: str = DEFAULT_DATE_FORMAT):
        self.loader = loader
        self.date_format = date_format

    def build(self, commits: Sequence[CommitInfo]) -> List[CommitNode]:
        """Build one CommitNode per commit, newest first.

        Does not touch storage. Commits already in timestamp order keep
        their relative order.
        """
        ordered = sorted(
            commits, key=lambda info: info.commit.hybrid_date_time, reverse=True
        )
        return [
            CommitNode(info.commit, info.change_count, self.loader, self.date_format)
            for info in ordered
        ]

"""Facade that wires the storage components into a browsable commit tree."""

import logging
from typing import List, Optional

from .change_types import ChangeTypeRegistry
from .config import InspectorConfig
from .errors import CommitNotFound, ValidationError
from .hierarchy import DEFAULT_DATE_FORMAT, CommitNode, HierarchyBuilder
from .storage.change_loader import ChangeLoader
from .storage.commit_repository import CommitRepository
from .storage.locator import StorageLocator
from .storage.session import SessionFactory, database_display_name

logger = logging.getLogger(__name__)


class CommitInspector:
    """Loads the commit tree of the database the locator points at.

    Components are built once. Switching databases only rewrites the
    locator's value and reloads; the session factory picks the new value
    up on its next ``open_session`` call.
    """

    def __init__(
        self,
        locator: StorageLocator,
        registry: Optional[ChangeTypeRegistry] = None,
        date_format: str = DEFAULT_DATE_FORMAT,
    ):
        self.locator = locator
        self.registry = registry or ChangeTypeRegistry()
        self.session_factory = SessionFactory(locator)
        self.repository = CommitRepository()
        self.change_loader = ChangeLoader(self.session_factory, self.registry)
        self.builder = HierarchyBuilder(self.change_loader.load_changes, date_format)

        self.commit_nodes: List[CommitNode] = []
        self.database_name = "(db)"
        self.database_path = ""

    @classmethod
    def from_config(
        cls, config: InspectorConfig, db_path: Optional[str] = None
    ) -> "CommitInspector":
        """Create an inspector from configuration.

        Args:
            config: Loaded configuration
            db_path: Location overriding ``config.db_path``

        Raises:
            ValidationError: If no usable location is given
        """
        location = db_path if db_path is not None else config.db_path
        if location is None or not location.strip():
            raise ValidationError(
                "No database given. Pass --db or set db_path in the config file."
            )
        return cls(
            StorageLocator(location),
            registry=ChangeTypeRegistry.from_config(config),
            date_format=config.display.date_format,
        )

    def load_commits(self) -> List[CommitNode]:
        """Reload commits from the current location and rebuild the tree.

        Raises:
            StorageUnavailable: If the database cannot be opened
            QueryFailure: If the commit query fails
        """
        with self.session_factory.open_session() as session:
            self.database_path = session.database_path
            self.database_name = database_display_name(session.location)
            commit_infos = self.repository.load_commits(session)

        self.commit_nodes = self.builder.build(commit_infos)
        logger.info(f"Loaded {len(self.commit_nodes)} commits from {self.database_name}")
        return self.commit_nodes

    def switch_database(self, location: str) -> List[CommitNode]:
        """Point the locator at another database and reload.

        A blank location raises ValidationError and leaves both the locator
        and the loaded tree unchanged.
        """
        self.locator.location = location
        return self.load_commits()

    def find_commit(self, hash_prefix: str) -> CommitNode:
        """Return the loaded commit node whose hash starts with ``hash_prefix``.

        Raises:
            CommitNotFound: If no commit or more than one commit matches
        """
        prefix = (hash_prefix or "").strip()
        if not prefix:
            raise CommitNotFound("Commit hash cannot be empty")

        matches = [n for n in self.commit_nodes if n.commit.hash.startswith(prefix)]
        if not matches:
            raise CommitNotFound(f"No commit matches '{prefix}'")
        if len(matches) > 1:
            raise CommitNotFound(
                f"Hash prefix '{prefix}' is ambiguous ({len(matches)} commits match)"
            )
        return matches[0]

    @property
    def commit_count(self) -> int:
        return len(self.commit_nodes)

    @property
    def change_type_names(self) -> List[str]:
        return self.registry.change_type_names

    @property
    def object_type_names(self) -> List[str]:
        return self.registry.object_type_names

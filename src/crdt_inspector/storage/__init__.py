"""SQLite-backed access to a CRDT commit log."""

from .locator import StorageLocator
from .session import SessionFactory, StoreSession
from .commit_repository import CommitRepository
from .change_loader import ChangeLoader

__all__ = [
    "StorageLocator",
    "SessionFactory",
    "StoreSession",
    "CommitRepository",
    "ChangeLoader",
]

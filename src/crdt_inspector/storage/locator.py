"""Process-wide holder for the location of the backing store."""

import logging

from ..errors import ValidationError

logger = logging.getLogger(__name__)


class StorageLocator:
    """Holds the current store location so it can be swapped at runtime.

    Components that open sessions keep a reference to the locator rather
    than to a location string, and read ``location`` each time they
    connect. Changing the location therefore redirects every later session
    without rebuilding those components. Sessions already open keep the
    value they read.

    The location is a single ``str`` attribute that is replaced wholesale,
    so a reader on another thread sees either the old or the new value.
    No lock is taken; a long query never blocks a swap.
    """

    def __init__(self, location: str):
        """Initialize the locator.

        Args:
            location: Path to the SQLite file or a connection string

        Raises:
            ValidationError: If location is empty or blank
        """
        self._location = self._validate(location)

    @staticmethod
    def _validate(location: str) -> str:
        if location is None or not str(location).strip():
            raise ValidationError("Storage location cannot be empty")
        return str(location)

    @property
    def location(self) -> str:
        return self._location

    @location.setter
    def location(self, value: str) -> None:
        new_location = self._validate(value)
        previous = self._location
        self._location = new_location
        if previous != new_location:
            logger.info(f"Storage location changed: {previous} -> {new_location}")

    def __repr__(self) -> str:
        return f"StorageLocator({self._location!r})"

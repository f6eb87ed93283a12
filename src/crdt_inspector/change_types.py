"""Change type discriminators and the registry of known change kinds.

Change payloads are persisted as JSON objects carrying a ``$type``
discriminator. Generic change types are written either in angle bracket
form (``DeleteChange<Entry>``) or in colon form (``DeleteChange:Entry``);
both parse to the same ``ChangeKind``.
"""

import logging
from typing import Iterable, List, Optional, Union

from .errors import QueryFailure
from .models import ChangeKind

logger = logging.getLogger(__name__)

TYPE_DISCRIMINATOR_KEY = "$type"


def _split_type_args(args: str) -> List[str]:
    """Split a generic argument list on top-level commas only."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in args:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return [p for p in parts if p]


def parse_discriminator(discriminator: str) -> ChangeKind:
    """Parse a ``$type`` discriminator into a ``ChangeKind``.

    Args:
        discriminator: Stored tag, e.g. ``"Leaf"``, ``"Box<Int>"`` or
            ``"Box:Int"``

    Returns:
        ChangeKind with the base name and generic arguments

    Raises:
        ValueError: If the discriminator is blank, has unbalanced brackets,
            or has an empty name or empty generic argument list
    """
    text = (discriminator or "").strip()
    if not text:
        raise ValueError("Change type discriminator is empty")

    open_index = text.find("<")
    if open_index >= 0:
        if not text.endswith(">") or text.count("<") != text.count(">"):
            raise ValueError(f"Unbalanced generic arguments in '{discriminator}'")
        name = text[:open_index].strip()
        args = _split_type_args(text[open_index + 1 : -1])
    elif ">" in text:
        raise ValueError(f"Unbalanced generic arguments in '{discriminator}'")
    elif ":" in text:
        name, _, rest = text.partition(":")
        name = name.strip()
        args = _split_type_args(rest)
    else:
        return ChangeKind(text)

    if not name:
        raise ValueError(f"Change type discriminator '{discriminator}' has no name")
    if not args:
        raise ValueError(f"Empty generic argument list in '{discriminator}'")
    return ChangeKind(name, tuple(args))


def pretty_type_name(kind: Union[ChangeKind, str]) -> str:
    """Return the display name of a change kind or raw discriminator."""
    if isinstance(kind, str):
        kind = parse_discriminator(kind)
    return kind.display_name


class ChangeTypeRegistry:
    """Closed set of change kinds and object types known to the inspector.

    With ``strict`` disabled any well-formed discriminator resolves, which
    suits stores written by a newer engine than the configuration knows
    about. With ``strict`` enabled an unregistered discriminator is a
    ``QueryFailure``.
    """

    def __init__(
        self,
        change_types: Iterable[str] = (),
        object_types: Iterable[str] = (),
        strict: bool = False,
    ):
        self._change_kinds = {parse_discriminator(t) for t in change_types}
        self._object_types = {t.strip() for t in object_types if t and t.strip()}
        self.strict = strict

    @classmethod
    def from_config(cls, config) -> "ChangeTypeRegistry":
        """Build a registry from an ``InspectorConfig``."""
        return cls(
            change_types=config.change_types,
            object_types=config.object_types,
            strict=config.strict_change_types,
        )

    def is_registered(self, kind: ChangeKind) -> bool:
        return kind in self._change_kinds

    def resolve(self, discriminator: Optional[str]) -> ChangeKind:
        """Resolve a stored discriminator to its change kind.

        Raises:
            QueryFailure: If the discriminator is malformed, or unregistered
                while the registry is strict
        """
        try:
            kind = parse_discriminator(discriminator or "")
        except ValueError as e:
            raise QueryFailure(f"Invalid change type discriminator: {e}") from e

        if self.strict and not self.is_registered(kind):
            raise QueryFailure(f"Unregistered change type: {kind.display_name}")
        if self._change_kinds and not self.is_registered(kind):
            logger.debug(f"Change type {kind.display_name} is not registered")
        return kind

    @property
    def change_type_names(self) -> List[str]:
        return sorted(kind.display_name for kind in self._change_kinds)

    @property
    def object_type_names(self) -> List[str]:
        return sorted(self._object_types)

    @property
    def change_type_count(self) -> int:
        return len(self._change_kinds)

    @property
    def object_type_count(self) -> int:
        return len(self._object_types)

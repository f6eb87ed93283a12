"""Data model for commits and changes read from a CRDT store.

Commits are loaded as detached value objects. Their ``change_entities``
list starts empty and is filled at most once by the change loader, so the
change count carried alongside a commit (see ``CommitInfo``) is the only
reliable way to know whether a commit has children before it is expanded.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple, Tuple

_FRACTION_PATTERN = re.compile(r"(?<=\d\d:\d\d:\d\d)\.(\d+)")


def _six_digit_fraction(match: "re.Match") -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


@dataclass(frozen=True, order=True)
class HybridDateTime:
    """Hybrid logical timestamp: wall clock time plus a logical counter.

    Ordering compares ``date_time`` first and ``counter`` second, which gives
    a total order across commits written by clients with skewed clocks.
    """

    date_time: datetime
    counter: int = 0

    @classmethod
    def parse(cls, raw: str, counter: int = 0) -> "HybridDateTime":
        """Build a timestamp from the ISO-8601 text stored in the database.

        Naive values are treated as UTC so that all timestamps compare.

        Raises:
            ValueError: If ``raw`` is not an ISO-8601 date time
        """
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # Stores write 1-7 fractional digits; fromisoformat wants exactly 6
        text = _FRACTION_PATTERN.sub(_six_digit_fraction, text, count=1)
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return cls(parsed, int(counter or 0))

    def format(self, date_format: str) -> str:
        return self.date_time.strftime(date_format)


@dataclass(frozen=True)
class ChangeKind:
    """Variant tag of a change payload, e.g. ``DeleteChange<Entry>``."""

    name: str
    type_args: Tuple[str, ...] = ()

    @property
    def is_generic(self) -> bool:
        return bool(self.type_args)

    @property
    def display_name(self) -> str:
        """Human readable tag; generic kinds render as ``Name<Arg1,Arg2>``."""
        if not self.type_args:
            return self.name
        return f"{self.name}<{','.join(self.type_args)}>"

    def __str__(self) -> str:
        return self.display_name


@dataclass(frozen=True)
class ChangePayload:
    """Decoded change body together with its variant tag."""

    kind: ChangeKind
    data: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ChangeEntity:
    """A single typed change recorded at ``index`` within its commit."""

    index: int
    commit_id: str
    entity_id: str
    change: ChangePayload


@dataclass
class Commit:
    """An immutable, timestamped bundle of changes.

    ``change_entities`` is an in-memory cache. Only the change loader
    appends to it, and it never replaces entries.
    """

    id: str
    hash: str
    hybrid_date_time: HybridDateTime
    parent_hash: str = ""
    client_id: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    change_entities: List[ChangeEntity] = field(default_factory=list)

    @property
    def short_hash(self) -> str:
        return self.hash[:12]


class CommitInfo(NamedTuple):
    """A commit paired with the change count computed by the store."""

    commit: Commit
    change_count: int

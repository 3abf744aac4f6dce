# In src/flake_locker/node.py
from dataclasses import dataclass, field, fields
from typing import Dict, Optional


@dataclass(frozen=True)
class LockedSource:
    """The locked-source descriptor of a flake.lock node.

    Every field is optional; absent fields stay ``None``.
    """

    type: Optional[str] = None
    owner: Optional[str] = None
    repo: Optional[str] = None
    host: Optional[str] = None
    url: Optional[str] = None
    path: Optional[str] = None
    rev: Optional[str] = None
    ref: Optional[str] = None
    nar_hash: Optional[str] = None
    last_modified: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass(frozen=True)
class Node:
    """A single entry in the flake.lock dependency graph.

    ``original`` is the unlocked flake reference as written by the user; it
    is carried into the JSON export next to each duplicated node.
    """

    name: str
    source: LockedSource = field(default_factory=LockedSource)
    has_locked: bool = False
    original: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FlakeLock:
    """A parsed flake.lock document. ``nodes`` keeps file order."""

    version: int
    root: str
    nodes: Dict[str, Node]

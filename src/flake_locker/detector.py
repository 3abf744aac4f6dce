"""
Duplicate detection over a parsed flake.lock graph.

Groups nodes by the identity key of their locked source and reports every
key that more than one node resolves to.
"""

import time
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Tuple

from .error_handling import FlakeLockError
from .identity import IdentityKey, node_identity
from .node import Node
from .parsers import MAX_FILE_SIZE, SUPPORTED_VERSIONS, load_flake_lock
from .structured_logging import (
    log_duplicates_detected,
    log_lint_complete,
    log_lint_failed,
    log_lint_start,
)


@dataclass(frozen=True)
class DuplicateGroup:
    """Two or more nodes that lock the same source."""

    key: IdentityKey
    nodes: Tuple[Node, ...]

    @property
    def uri(self) -> str:
        return self.key.uri

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(node.name for node in self.nodes)


@dataclass(frozen=True)
class LintResult:
    """Complete lint results for a lock file."""

    file_path: str
    total_nodes: int
    groups: List[DuplicateGroup]
    duration_ms: int
    include_revision: bool = False

    @property
    def has_duplicates(self) -> bool:
        return len(self.groups) > 0

    @property
    def duplicate_node_count(self) -> int:
        """Number of nodes that belong to some duplicate group."""
        return sum(len(group.nodes) for group in self.groups)


def find_duplicates(
    nodes: Mapping[str, Node],
    include_revision: bool = False,
    ignore_unlocked: bool = False,
) -> List[DuplicateGroup]:
    """
    Find nodes whose locked sources share an identity key.

    Nodes without any locked source are grouped like any other: they all
    share the empty key. Pass ``ignore_unlocked`` to leave them out.

    Args:
        nodes: Node name to node, in file order
        include_revision: Treat different revisions of one source as distinct
        ignore_unlocked: Skip nodes that carry no ``locked`` object

    Returns:
        List[DuplicateGroup]: Groups in the order their key was first seen,
        members in file order
    """
    buckets: Dict[IdentityKey, List[Node]] = {}

    for node in nodes.values():
        if ignore_unlocked and not node.has_locked:
            continue
        key = node_identity(node, include_revision)
        buckets.setdefault(key, []).append(node)

    return [
        DuplicateGroup(key=key, nodes=tuple(members))
        for key, members in buckets.items()
        if len(members) >= 2
    ]


def lint_flake_lock(
    file_path: str,
    include_revision: bool = False,
    ignore_unlocked: bool = False,
    supported_versions: Iterable[int] = SUPPORTED_VERSIONS,
    max_file_size: int = MAX_FILE_SIZE,
) -> LintResult:
    """
    Load a flake.lock file and detect duplicate inputs.

    Raises:
        IoError: If the file cannot be read
        ParseError: If the file is not a usable flake.lock
    """
    run_id = f"lint_{uuid.uuid4().hex[:12]}"
    log_lint_start(run_id, file_path)
    start_time = time.perf_counter()

    try:
        flake_lock = load_flake_lock(
            file_path,
            supported_versions=supported_versions,
            max_file_size=max_file_size,
        )
    except FlakeLockError as e:
        log_lint_failed(run_id, e)
        raise

    groups = find_duplicates(
        flake_lock.nodes,
        include_revision=include_revision,
        ignore_unlocked=ignore_unlocked,
    )
    for group in groups:
        log_duplicates_detected(group.uri, list(group.names))

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    log_lint_complete(run_id, len(flake_lock.nodes), duration_ms, len(groups))

    return LintResult(
        file_path=file_path,
        total_nodes=len(flake_lock.nodes),
        groups=groups,
        duration_ms=duration_ms,
        include_revision=include_revision,
    )

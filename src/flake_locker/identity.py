"""
Identity keys for flake.lock nodes.

Two nodes are duplicates when their locked sources reduce to the same key.
The key is a plain tuple of normalized fields so it can be hashed and
compared; missing fields take part as empty strings.
"""

from typing import NamedTuple

from .error_handling import ErrorCategory, get_error_handler
from .node import LockedSource, Node

# Forges whose owner/repo names are case-insensitive.
FORGE_TYPES = {"github", "gitlab", "sourcehut"}
URL_TYPES = {"git", "hg", "tarball", "file"}
PATH_TYPES = {"path"}
KNOWN_TYPES = FORGE_TYPES | URL_TYPES | PATH_TYPES | {"indirect"}

EMPTY_SOURCE_URI = "<no locked source>"


class IdentityKey(NamedTuple):
    type: str = ""
    owner: str = ""
    repo: str = ""
    host: str = ""
    url: str = ""
    path: str = ""
    rev: str = ""

    @property
    def is_empty(self) -> bool:
        return not any(self)

    @property
    def uri(self) -> str:
        """Render the key as a flake URI, e.g. ``github:nixos/nixpkgs``."""
        if self.is_empty:
            return EMPTY_SOURCE_URI

        if self.type in FORGE_TYPES:
            location = f"{self.owner}/{self.repo}"
            if self.host:
                location += f"?host={self.host}"
        elif self.url:
            location = self.url
        elif self.path:
            location = self.path
        else:
            location = "/".join(part for part in (self.owner, self.repo) if part)

        uri = f"{self.type}:{location}" if self.type else location
        if self.rev:
            uri += f"@{self.rev}"
        return uri


def _text(value) -> str:
    return "" if value is None else str(value)


def identity_key(source: LockedSource, include_revision: bool = False) -> IdentityKey:
    """
    Build the identity key of a locked source.

    Owner and repo are lower-cased for github, gitlab and sourcehut. Every
    other field is used verbatim. The revision only takes part when
    ``include_revision`` is set.
    """
    source_type = _text(source.type)
    owner = _text(source.owner)
    repo = _text(source.repo)

    if source_type in FORGE_TYPES:
        owner = owner.lower()
        repo = repo.lower()

    return IdentityKey(
        type=source_type,
        owner=owner,
        repo=repo,
        host=_text(source.host),
        url=_text(source.url),
        path=_text(source.path),
        rev=_text(source.rev) if include_revision else "",
    )


def node_identity(node: Node, include_revision: bool = False) -> IdentityKey:
    """Identity key for a node. Unknown source types still get a key."""
    source_type = node.source.type
    if source_type is not None and source_type not in KNOWN_TYPES:
        get_error_handler().warning(
            ErrorCategory.VALIDATION,
            f"Unknown source type '{source_type}' for input '{node.name}'",
            "identity",
            "node_identity",
            details={"node": node.name, "type": source_type},
        )
    return identity_key(node.source, include_revision)

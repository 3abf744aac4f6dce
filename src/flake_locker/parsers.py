import json
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .error_handling import (
    IoError,
    ParseError,
    UnsupportedVersionError,
    log_filesystem_error,
    log_parsing_error,
)
from .node import FlakeLock, LockedSource, Node

SUPPORTED_VERSIONS = (7,)
MAX_FILE_SIZE = 10 * 1024 * 1024

# flake.lock key -> LockedSource attribute
LOCKED_FIELDS = {
    "type": "type",
    "owner": "owner",
    "repo": "repo",
    "host": "host",
    "url": "url",
    "path": "path",
    "rev": "rev",
    "ref": "ref",
    "narHash": "nar_hash",
    "lastModified": "last_modified",
}


def _raise_io_error(message: str, path: str, exception: Optional[Exception] = None):
    error = IoError(message, path)
    log_filesystem_error(error, "parsers", "read_lock_file", exception=exception)
    raise error from exception


def _raise_parse_error(error: ParseError, exception: Optional[Exception] = None):
    log_parsing_error(error, "parsers", "parse_flake_lock", exception=exception)
    raise error from exception


def read_lock_file(file_path: str, max_file_size: int = MAX_FILE_SIZE) -> str:
    """
    Read a lock file from disk.

    Args:
        file_path: Path to the lock file
        max_file_size: Largest accepted file size in bytes

    Returns:
        str: File contents

    Raises:
        IoError: If the file is missing, not a regular file, too large or
            unreadable
    """
    path = Path(file_path)

    try:
        if not path.exists():
            _raise_io_error("File does not exist", file_path)
        if not path.is_file():
            _raise_io_error("Path is not a file", file_path)

        file_size = path.stat().st_size
        if file_size > max_file_size:
            _raise_io_error(
                f"File too large: {file_size} bytes (max: {max_file_size})", file_path
            )

        with open(path, encoding="utf-8") as f:
            return f.read()
    except PermissionError as e:
        _raise_io_error("Permission denied reading file", file_path, e)
    except UnicodeDecodeError as e:
        _raise_io_error("File contains invalid UTF-8 characters", file_path, e)
    except OSError as e:
        _raise_io_error(f"Error reading file: {e.strerror or e}", file_path, e)


def _parse_locked(name: str, locked: Any, source_name: str) -> LockedSource:
    if not isinstance(locked, dict):
        _raise_parse_error(
            ParseError(f"'locked' of node '{name}' must be an object", source_name)
        )

    values: Dict[str, Any] = {}
    for key, attribute in LOCKED_FIELDS.items():
        value = locked.get(key)
        if value is None:
            continue
        if attribute == "last_modified":
            values[attribute] = value if isinstance(value, int) else None
        else:
            values[attribute] = str(value)
    return LockedSource(**values)


def _parse_node(name: str, data: Any, source_name: str) -> Node:
    if not isinstance(data, dict):
        _raise_parse_error(
            ParseError(f"Node '{name}' must be an object", source_name)
        )

    locked = data.get("locked")
    source = LockedSource() if locked is None else _parse_locked(name, locked, source_name)

    original = data.get("original")

    return Node(
        name=name,
        source=source,
        has_locked=locked is not None,
        original=(
            {str(k): str(v) for k, v in original.items()}
            if isinstance(original, dict)
            else {}
        ),
    )


def parse_flake_lock(
    content: str,
    source_name: Optional[str] = None,
    supported_versions: Iterable[int] = SUPPORTED_VERSIONS,
) -> FlakeLock:
    """
    Parse the contents of a flake.lock file.

    Only the parts needed to identify each node's source are validated: the
    top-level ``nodes`` object, the format ``version`` and each node's
    ``locked`` object.

    Args:
        content: Raw JSON text
        source_name: File path used in error messages
        supported_versions: Format versions to accept

    Returns:
        FlakeLock: The parsed lock file, nodes in file order

    Raises:
        ParseError: If the content is not valid JSON or lacks the node collection
        UnsupportedVersionError: If the format version is not supported
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        _raise_parse_error(
            ParseError(f"Invalid JSON: {e.msg}", source_name, e.lineno, e.colno), e
        )

    if not isinstance(data, dict):
        _raise_parse_error(
            ParseError("flake.lock must contain a JSON object", source_name)
        )

    nodes_data = data.get("nodes")
    if nodes_data is None:
        _raise_parse_error(ParseError("Missing 'nodes' collection", source_name))
    if not isinstance(nodes_data, dict):
        _raise_parse_error(ParseError("'nodes' must be an object", source_name))

    version = data.get("version")
    if version is None:
        _raise_parse_error(ParseError("Missing 'version' field", source_name))
    if isinstance(version, bool) or not isinstance(version, int) or (
        version not in tuple(supported_versions)
    ):
        _raise_parse_error(UnsupportedVersionError(version, source_name))

    root = data.get("root", "root")

    nodes = {
        name: _parse_node(name, node_data, source_name)
        for name, node_data in nodes_data.items()
    }

    return FlakeLock(version=version, root=str(root), nodes=nodes)


def load_flake_lock(
    file_path: str,
    supported_versions: Iterable[int] = SUPPORTED_VERSIONS,
    max_file_size: int = MAX_FILE_SIZE,
) -> FlakeLock:
    """Read and parse a flake.lock file."""
    return parse_flake_lock(
        read_lock_file(file_path, max_file_size),
        source_name=file_path,
        supported_versions=supported_versions,
    )

"""
Path safety utilities for fallback cleanup.

Fallback cleanup runs `rm -rf` inside the registry container, so every
repository and tag name is validated before it becomes part of a path.
The layout below is the on-disk format of the registry:2 filesystem driver;
it is not a public contract and may change between registry versions.
"""
from __future__ import annotations

import re
from pathlib import PurePosixPath

_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9._-]{0,127}$")


def safe_relpath(path: str) -> str:
    """
    Validate and normalize a user-provided path to prevent traversal attacks.

    This function enforces the following safety rules:
    - No empty strings or "." (would resolve to the storage root itself)
    - No absolute paths (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes
    - No components starting with '_' (reserved by the registry: _manifests, _layers, _uploads)

    Args:
        path: User-provided path string

    Returns:
        Normalized relative path safe for use

    Raises:
        ValueError: If path violates safety rules

    Examples:
        >>> safe_relpath("team/app")
        'team/app'

        >>> safe_relpath("../secrets")
        ValueError: unsafe path: ../secrets
    """
    rel = PurePosixPath(path)
    s = str(rel)
    if not path or not s or s == ".":
        raise ValueError(f"unsafe path: {path}")
    if "\\" in s:
        raise ValueError(f"unsafe path: {path}")
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"unsafe path: {path}")
    if any(part.startswith("_") for part in rel.parts):
        raise ValueError(f"unsafe path: {path}")
    return s


def repository_path(storage_root: str, repo: str) -> str:
    """Absolute in-container path of a repository directory."""
    return str(PurePosixPath(storage_root) / safe_relpath(repo))


def tag_path(storage_root: str, repo: str, tag: str) -> str:
    """
    Absolute in-container path of a tag link directory.

    Examples:
        >>> tag_path("/var/lib/registry/docker/registry/v2/repositories", "myapp", "v1")
        '/var/lib/registry/docker/registry/v2/repositories/myapp/_manifests/tags/v1'
    """
    if not _TAG_RE.match(tag):
        raise ValueError(f"unsafe tag: {tag}")
    return str(PurePosixPath(repository_path(storage_root, repo)) / "_manifests" / "tags" / tag)

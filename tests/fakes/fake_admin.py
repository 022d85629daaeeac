"""
Fake registry container control for testing.

Records every administrative call in order so tests can assert that
garbage collection follows deletion and the restart follows GC.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from registry_maint.storage.registry_errors import FallbackFailed, GarbageCollectionFailed

from .fake_registry import FakeRegistry

__all__ = ["FakeAdmin"]

_TAGS_MARKER = "/_manifests/tags/"


class FakeAdmin:
    """
    Test double for RegistryAdmin.

    When given a FakeRegistry, removed paths are applied to it so later API
    calls see the cleanup.
    """

    def __init__(self, registry: Optional[FakeRegistry] = None, storage_root: str = "/var/lib/registry/docker/registry/v2/repositories"):
        self.registry = registry
        self.storage_root = storage_root
        self.calls: List[Tuple[str, ...]] = []
        self.fail_remove = False
        self.fail_paths = set()
        self.fail_gc = False

    def remove_path(self, path: str) -> None:
        self.calls.append(("remove", path))
        if self.fail_remove or path in self.fail_paths:
            raise FallbackFailed(f"Removing {path} exited with code 1", reason="rm: permission denied")
        if self.registry is not None:
            rel = path[len(self.storage_root) + 1:]
            if _TAGS_MARKER in "/" + rel:
                repo, tag = rel.split(_TAGS_MARKER.lstrip("/"), 1)
                self.registry.remove_tag(repo.rstrip("/"), tag)
            else:
                self.registry.remove_repository(rel)

    def garbage_collect(self) -> str:
        self.calls.append(("gc",))
        if self.fail_gc:
            raise GarbageCollectionFailed("Garbage collection exited with code 1", output="panic: bad config")
        return "0 blobs marked, 0 blobs and 0 manifests eligible for deletion"

    def restart(self) -> None:
        self.calls.append(("restart",))

    @property
    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

"""
Fake registry:2 HTTP API for testing.

Keeps repositories, tags and manifests in memory and answers the Docker
Registry v2 endpoints through httpx.MockTransport, so tests exercise the real
RegistryHTTP client end to end without a network.
"""
from __future__ import annotations

import hashlib
import json
from typing import Dict, List, Optional, Set, Tuple

import httpx

from registry_maint.storage.media_types import DIGEST_HEADER, OCI_IMAGE_MANIFEST

__all__ = ["FakeRegistry", "make_digest"]


def make_digest(seed: str) -> str:
    """Deterministic sha256 digest for test manifests."""
    return f"sha256:{hashlib.sha256(seed.encode()).hexdigest()}"


def _error(status: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(status, json={"errors": [{"code": code, "message": message}]})


class FakeRegistry:
    """
    In-memory registry implementation for testing.

    This is a test double; not for production use.
    Deleting a manifest removes every tag pointing at it, like the real registry.
    """

    def __init__(self) -> None:
        self._tags: Dict[str, Dict[str, str]] = {}       # repo -> {tag: digest}
        self._manifests: Dict[str, Set[str]] = {}        # repo -> {digest}
        self.requests: List[httpx.Request] = []
        self.deleted: List[Tuple[str, str]] = []         # (repo, digest) in delete order

        # Failure injection
        self.omit_digest_header: Set[Tuple[str, str]] = set()   # (repo, tag)
        self.delete_response: Optional[httpx.Response] = None
        self.connect_error: Optional[Exception] = None
        self.unready_polls = 0                                  # GET /v2/ refused this many times

    def add_image(self, repo: str, tag: str, digest: Optional[str] = None) -> str:
        """Tag a manifest in repo, creating both as needed. Returns the digest."""
        digest = digest or make_digest(f"{repo}:{tag}")
        self._tags.setdefault(repo, {})[tag] = digest
        self._manifests.setdefault(repo, set()).add(digest)
        return digest

    def add_empty_repository(self, repo: str) -> None:
        """A repository that exists but has no tags left."""
        self._tags.setdefault(repo, {})
        self._manifests.setdefault(repo, set())

    def remove_tag(self, repo: str, tag: str) -> None:
        """Drop a tag link only, as fallback cleanup does on disk."""
        self._tags.get(repo, {}).pop(tag, None)

    def drop_manifest(self, repo: str, digest: str) -> None:
        """Remove a manifest revision but leave tags pointing at it (dangling links)."""
        self._manifests.get(repo, set()).discard(digest)

    def pings(self) -> int:
        return sum(1 for r in self.requests if r.url.path == "/v2/")

    def remove_repository(self, repo: str) -> None:
        self._tags.pop(repo, None)
        self._manifests.pop(repo, None)

    def tags_of(self, repo: str) -> Dict[str, str]:
        return dict(self._tags.get(repo, {}))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_for(self, method: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.connect_error is not None:
            raise self.connect_error

        path = request.url.path
        if path == "/v2/":
            if self.unready_polls > 0:
                self.unready_polls -= 1
                raise httpx.ConnectError("Connection refused")
            return httpx.Response(200, json={})

        if path == "/v2/_catalog":
            return httpx.Response(200, json={"repositories": sorted(self._tags)})

        if path.startswith("/v2/") and path.endswith("/tags/list"):
            repo = path[len("/v2/"):-len("/tags/list")]
            if repo not in self._tags:
                return _error(404, "NAME_UNKNOWN", "repository name not known to registry")
            tags = sorted(self._tags[repo]) or None
            return httpx.Response(200, json={"name": repo, "tags": tags})

        if path.startswith("/v2/") and "/manifests/" in path:
            repo, ref = path[len("/v2/"):].rsplit("/manifests/", 1)
            if request.method == "GET":
                return self._get_manifest(repo, ref)
            if request.method == "DELETE":
                return self._delete_manifest(repo, ref)

        return _error(404, "NOT_FOUND", f"no route for {request.method} {path}")

    def _get_manifest(self, repo: str, ref: str) -> httpx.Response:
        digest = ref if ref.startswith("sha256:") else self._tags.get(repo, {}).get(ref)
        if digest is None or digest not in self._manifests.get(repo, set()):
            return _error(404, "MANIFEST_UNKNOWN", "manifest unknown")

        body = json.dumps({"schemaVersion": 2, "mediaType": OCI_IMAGE_MANIFEST}).encode()
        headers = {"Content-Type": OCI_IMAGE_MANIFEST}
        if (repo, ref) not in self.omit_digest_header:
            headers[DIGEST_HEADER] = digest
        return httpx.Response(200, headers=headers, content=body)

    def _delete_manifest(self, repo: str, digest: str) -> httpx.Response:
        if self.delete_response is not None:
            return self.delete_response
        if digest not in self._manifests.get(repo, set()):
            return _error(404, "MANIFEST_UNKNOWN", "manifest unknown")

        self._manifests[repo].discard(digest)
        self._tags[repo] = {t: d for t, d in self._tags[repo].items() if d != digest}
        self.deleted.append((repo, digest))
        return httpx.Response(202)

"""
Manifest media types and registry constants.

Single source of truth for the manifest content types the client asks for
and the headers it reads back.
"""
from __future__ import annotations

OCI_IMAGE_INDEX = "application/vnd.oci.image.index.v1+json"
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST_V2 = "application/vnd.docker.distribution.manifest.list.v2+json"

# Order of preference for manifest lookups. Multi-arch images only expose a
# digest for the index/list, so those come first.
MANIFEST_ACCEPT_TYPES = [
    OCI_IMAGE_INDEX,
    OCI_IMAGE_MANIFEST,
    DOCKER_MANIFEST_V2,
    DOCKER_MANIFEST_LIST_V2,
]

# Content types sent with manifest deletes
DELETE_ACCEPT_TYPES = [
    OCI_IMAGE_INDEX,
    OCI_IMAGE_MANIFEST,
]

DIGEST_HEADER = "Docker-Content-Digest"


__all__ = [
    "OCI_IMAGE_INDEX",
    "OCI_IMAGE_MANIFEST",
    "DOCKER_MANIFEST_V2",
    "DOCKER_MANIFEST_LIST_V2",
    "MANIFEST_ACCEPT_TYPES",
    "DELETE_ACCEPT_TYPES",
    "DIGEST_HEADER",
]

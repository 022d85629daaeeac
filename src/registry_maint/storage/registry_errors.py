"""
Registry maintenance error classes.

Provides a clear taxonomy of errors that can occur while talking to the
registry API or to the registry container. HTTP status codes and httpx/docker
exceptions are mapped to these classes at the client boundary so the
maintenance workflow can decide between the primary path and the fallback.
"""
from __future__ import annotations

from typing import Optional


class RegistryError(Exception):
    """
    Base class for all registry maintenance errors.

    Any RegistryError raised on the primary (API) path of a delete makes the
    workflow fall back to direct filesystem cleanup.
    """
    pass


class UnreachableRegistry(RegistryError):
    """
    Registry could not be reached.

    Raised when:
    - DNS resolution or TCP connect fails
    - TLS handshake fails for reasons other than trust
    - Request times out after all attempts
    """
    pass


class TLSTrustError(RegistryError):
    """
    Registry certificate is not covered by the configured trust anchor.

    Raised when certificate verification fails during the TLS handshake,
    typically because the CA certificate path points at the wrong CA or the
    server certificate was reissued.
    """
    pass


class NotFound(RegistryError):
    """
    Repository, tag or manifest does not exist.

    Raised when:
    - HTTP 404 on tags/list (repository unknown)
    - HTTP 404 on a manifest lookup (tag unknown)
    """
    pass


class DigestNotFound(RegistryError):
    """
    Manifest lookup succeeded but no Docker-Content-Digest header was present.

    Carries the raw response so the operator can see what the registry
    actually returned.
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


class DeleteRejected(RegistryError):
    """
    Manifest delete returned a non-2xx status or a non-empty body.

    Typical causes are deletion being disabled in the registry config
    (405 UNSUPPORTED) or a digest the registry does not recognize.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class FallbackFailed(RegistryError):
    """
    Direct filesystem cleanup inside the registry container failed.

    This is the only error that ends a delete workflow without further
    recourse.
    """

    def __init__(self, message: str, reason: str = ""):
        super().__init__(message)
        self.reason = reason


class UsageError(RegistryError, ValueError):
    """Required command argument missing or invalid; raised before any network activity."""
    pass


class RegistryAdminError(RegistryError):
    """Base class for failures of the administrative control path (container exec/restart)."""
    pass


class RegistryContainerNotFound(RegistryAdminError):
    """No running registry container matched the configured name or image."""
    pass


class GarbageCollectionFailed(RegistryAdminError):
    """
    `registry garbage-collect` exited non-zero.

    The container is not restarted in that case.
    """

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class WorkflowFailed(RegistryError):
    """
    One or more delete workflows ended in the failed state.

    Raised by the CLI layer after the outcomes have been reported.
    """

    def __init__(self, message: str, outcomes=None):
        super().__init__(message)
        self.outcomes = list(outcomes or [])


__all__ = [
    "RegistryError",
    "UnreachableRegistry",
    "TLSTrustError",
    "NotFound",
    "DigestNotFound",
    "DeleteRejected",
    "FallbackFailed",
    "UsageError",
    "RegistryAdminError",
    "RegistryContainerNotFound",
    "GarbageCollectionFailed",
    "WorkflowFailed",
]

"""
Registry HTTP Client for the Docker Registry v2 API.

Provides the HTTP-level maintenance primitives: catalog and tag listing,
tag-to-digest resolution and manifest deletion, over HTTPS with a
caller-supplied trust anchor.
"""
from __future__ import annotations

import logging
import ssl
from pathlib import Path
from typing import List, Optional, Union

import httpx
from tenacity import (
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from ..settings import Settings
from .media_types import DELETE_ACCEPT_TYPES, DIGEST_HEADER, MANIFEST_ACCEPT_TYPES
from .registry_errors import (
    DeleteRejected,
    DigestNotFound,
    NotFound,
    RegistryError,
    TLSTrustError,
    UnreachableRegistry,
)

logger = logging.getLogger(__name__)

USER_AGENT = "registry-maint/0.1.0"

# Cap on how much of a response body is kept for diagnostics
_MAX_DEBUG_BODY = 4096


def build_verify(settings: Settings) -> Union[bool, ssl.SSLContext]:
    """
    Build the httpx `verify` argument from settings.

    Returns:
        False in insecure mode, an SSLContext trusting only the configured CA
        certificate when one is set, True (system trust store) otherwise.

    Raises:
        TLSTrustError: If the configured CA certificate cannot be loaded
    """
    if settings.insecure:
        logger.warning("TLS certificate verification is disabled (insecure mode)")
        return False

    if settings.ca_cert is None:
        return True

    ca_path = Path(settings.ca_cert)
    if not ca_path.is_file():
        raise TLSTrustError(f"CA certificate not found: {settings.ca_cert}")

    try:
        return ssl.create_default_context(cafile=str(ca_path))
    except ssl.SSLError as e:
        raise TLSTrustError(f"Could not load CA certificate {settings.ca_cert}: {e}") from e


def _is_cert_verification_failure(exc: BaseException) -> bool:
    """Walk the exception chain looking for a certificate verification failure."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError):
            return True
        if "CERTIFICATE_VERIFY_FAILED" in str(current):
            return True
        current = current.__cause__ or current.__context__
    return False


def _map_request_error(exc: httpx.RequestError, what: str) -> RegistryError:
    """Map an httpx transport-level error to the registry error taxonomy."""
    if _is_cert_verification_failure(exc):
        return TLSTrustError(f"Registry certificate not trusted while {what}: {exc}")
    if isinstance(exc, httpx.TimeoutException):
        return UnreachableRegistry(f"Timed out while {what}: {exc}")
    return UnreachableRegistry(f"Registry unreachable while {what}: {exc}")


def _format_raw_response(response: httpx.Response) -> str:
    """Render status line, headers and (truncated) body for operator diagnostics."""
    lines = [f"HTTP {response.status_code} {response.reason_phrase}"]
    for name, value in response.headers.items():
        lines.append(f"{name}: {value}")
    lines.append("")
    lines.append(response.text[:_MAX_DEBUG_BODY])
    return "\n".join(lines)


class RegistryHTTP:
    """
    HTTP client for registry maintenance operations.

    One instance talks to one registry endpoint. Requests are sequential;
    timeouts are retried `settings.http_retry` extra times (none by default).
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize registry HTTP client.

        Args:
            settings: Validated settings (host, port, trust anchor, timeouts)
            transport: Optional httpx transport override, used by tests
        """
        self.settings = settings
        self.base_url = settings.base_url

        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(settings.http_timeout_s),
            follow_redirects=True,
            verify=build_verify(settings),
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

        self._retrying = Retrying(
            stop=stop_after_attempt(settings.http_retry + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.TimeoutException),
            reraise=True,
        )

    def list_repositories(self) -> List[str]:
        """
        List every repository in the registry catalog.

        Returns:
            Sorted, de-duplicated repository names

        Raises:
            UnreachableRegistry: If the connection cannot be established
            TLSTrustError: If the certificate is not trusted
            RegistryError: On other HTTP errors or malformed JSON
        """
        what = "listing repositories"
        try:
            response = self._request("GET", "/v2/_catalog")
        except httpx.HTTPStatusError as e:
            raise RegistryError(f"Registry error {e.response.status_code} while {what}") from e
        except httpx.RequestError as e:
            raise _map_request_error(e, what) from e

        payload = self._json(response, what)
        repositories = payload.get("repositories") or []
        return sorted(set(repositories))

    def list_tags(self, repo: str) -> List[str]:
        """
        List the tags of a repository.

        Args:
            repo: Repository name (may contain slashes)

        Returns:
            Tags in registry order; empty list when the repository has no tags

        Raises:
            NotFound: If the repository does not exist
            UnreachableRegistry, TLSTrustError: On transport failures
        """
        what = f"listing tags for {repo}"
        try:
            response = self._request("GET", f"/v2/{repo}/tags/list")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFound(f"Repository not found: {repo}") from e
            raise RegistryError(f"Registry error {e.response.status_code} while {what}") from e
        except httpx.RequestError as e:
            raise _map_request_error(e, what) from e

        payload = self._json(response, what)
        # registry:2 answers {"name": ..., "tags": null} once every tag is deleted
        tags = payload.get("tags") or []
        if not isinstance(tags, list):
            raise RegistryError(f"Malformed tag list for {repo}: {tags!r}")
        return [str(tag) for tag in tags]

    def resolve_digest(self, repo: str, tag: str) -> str:
        """
        Resolve a tag to its manifest digest.

        Asks for index/list types before single-platform manifests so the
        digest returned is the one the tag points at.

        Args:
            repo: Repository name
            tag: Tag to resolve

        Returns:
            Manifest digest from the Docker-Content-Digest header

        Raises:
            NotFound: If the repository or tag does not exist
            DigestNotFound: If the response carries no digest header
            UnreachableRegistry, TLSTrustError: On transport failures
        """
        what = f"resolving {repo}:{tag}"
        headers = [("Accept", media_type) for media_type in MANIFEST_ACCEPT_TYPES]
        try:
            response = self._request("GET", f"/v2/{repo}/manifests/{tag}", headers=headers)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFound(f"Manifest not found: {repo}:{tag}") from e
            raise RegistryError(f"Registry error {e.response.status_code} while {what}") from e
        except httpx.RequestError as e:
            raise _map_request_error(e, what) from e

        digest = response.headers.get(DIGEST_HEADER, "").strip()
        if not digest:
            raise DigestNotFound(
                f"Registry did not return {DIGEST_HEADER} header for {repo}:{tag}",
                raw_response=_format_raw_response(response),
            )

        logger.debug(f"Resolved {repo}:{tag} to {digest}")
        return digest

    def delete_manifest(self, repo: str, digest: str) -> None:
        """
        Delete a manifest by digest.

        Removes every tag pointing at the digest. The registry answers
        202 Accepted with an empty body on success.

        Args:
            repo: Repository name
            digest: Manifest digest (sha256:...)

        Raises:
            DeleteRejected: On a non-2xx status or a non-empty body
            UnreachableRegistry, TLSTrustError: On transport failures
        """
        what = f"deleting {repo}@{digest}"
        headers = [("Accept", media_type) for media_type in DELETE_ACCEPT_TYPES]
        try:
            response = self._request("DELETE", f"/v2/{repo}/manifests/{digest}", headers=headers)
        except httpx.HTTPStatusError as e:
            body = e.response.text[:_MAX_DEBUG_BODY]
            raise DeleteRejected(
                f"Registry rejected delete of {repo}@{digest} with status {e.response.status_code}",
                status_code=e.response.status_code,
                body=body,
            ) from e
        except httpx.RequestError as e:
            raise _map_request_error(e, what) from e

        body = response.text.strip()
        if body:
            raise DeleteRejected(
                f"Registry returned a non-empty body deleting {repo}@{digest}",
                status_code=response.status_code,
                body=body[:_MAX_DEBUG_BODY],
            )

        logger.info(f"Deleted manifest {repo}@{digest}")

    def ping(self) -> None:
        """
        Check that the registry answers the API version check (GET /v2/).

        A 401 means the registry is up and wants credentials, so it counts
        as an answer.

        Raises:
            UnreachableRegistry, TLSTrustError: On transport failures
            RegistryError: On any other HTTP error
        """
        what = "checking registry availability"
        try:
            self._request("GET", "/v2/")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                return
            raise RegistryError(f"Registry error {e.response.status_code} while {what}") from e
        except httpx.RequestError as e:
            raise _map_request_error(e, what) from e

    def wait_until_ready(self) -> bool:
        """
        Poll the registry until it answers, after a container restart.

        Polls up to `settings.ready_attempts` times, `settings.ready_interval_s`
        apart. Certificate failures are not retried.

        Returns:
            True once the registry answers (or when polling is disabled),
            False if it never did
        """
        if self.settings.ready_attempts <= 0:
            return True

        retrying = Retrying(
            stop=stop_after_attempt(self.settings.ready_attempts),
            wait=wait_fixed(self.settings.ready_interval_s),
            retry=retry_if_not_exception_type(TLSTrustError),
            reraise=True,
        )
        try:
            retrying(self.ping)
        except RegistryError as e:
            logger.warning(f"Registry at {self.base_url} not ready: {e}")
            return False
        logger.debug(f"Registry at {self.base_url} is ready")
        return True

    def _request(self, method: str, path: str, headers=None, **kwargs) -> httpx.Response:
        """
        Make HTTP request, retrying timeouts per settings, and raise for HTTP errors.
        """
        logger.debug(f"{method} {self.base_url}{path}")
        return self._retrying(self._send, method, path, headers=headers, **kwargs)

    def _send(self, method: str, path: str, headers=None, **kwargs) -> httpx.Response:
        response = self.client.request(method, path, headers=headers, **kwargs)
        response.raise_for_status()
        return response

    @staticmethod
    def _json(response: httpx.Response, what: str) -> dict:
        try:
            payload = response.json()
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError both derive from ValueError
            raise RegistryError(f"Invalid JSON while {what}: {e}") from e
        if not isinstance(payload, dict):
            raise RegistryError(f"Unexpected JSON while {what}: {payload!r}")
        return payload

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

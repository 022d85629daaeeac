"""
Registry maintenance workflow.

Composes the HTTP primitives and the container control path into the delete
and garbage-collection workflows:

    resolving_digest -> deleting -> running_gc -> done
            |               |           |
            +---------------+--> fallback_cleanup -> running_gc
                                        |                 |
                                        +----> failed <---+

Errors on the API path are caught here and send the workflow to the fallback
instead of aborting. Everything runs sequentially; each tag's GC and restart
finish before the next tag starts.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol

from .models import DeleteOutcome, DeleteState
from .path_safety import repository_path, tag_path
from .settings import Settings
from .storage.registry_errors import (
    DigestNotFound,
    FallbackFailed,
    GarbageCollectionFailed,
    NotFound,
    RegistryAdminError,
    RegistryError,
)

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[DeleteOutcome, DeleteState], None]


class RegistryAPI(Protocol):
    """HTTP operations the workflow needs (implemented by RegistryHTTP)."""

    def list_tags(self, repo: str) -> List[str]: ...

    def resolve_digest(self, repo: str, tag: str) -> str: ...

    def delete_manifest(self, repo: str, digest: str) -> None: ...

    def wait_until_ready(self) -> bool: ...


class RegistryControl(Protocol):
    """Out-of-band operations the workflow needs (implemented by RegistryAdmin)."""

    def garbage_collect(self) -> str: ...

    def restart(self) -> None: ...

    def remove_path(self, path: str) -> None: ...


class MaintenanceWorkflow:
    """
    Delete and garbage-collection workflows against one registry.

    Args:
        api: Registry HTTP client
        admin: Registry container control
        settings: Settings (storage root, shared-digest protection)
        on_transition: Called with the outcome each time a state is entered
    """

    def __init__(self, api: RegistryAPI, admin: RegistryControl, settings: Settings,
                 on_transition: Optional[TransitionCallback] = None):
        self.api = api
        self.admin = admin
        self.settings = settings
        self.on_transition = on_transition

    def delete_tag(self, repo: str, tag: str) -> DeleteOutcome:
        """
        Delete a single tag, falling back to direct cleanup when the API path fails.

        Returns:
            Outcome ending in DONE or FAILED
        """
        outcome = DeleteOutcome(repository=repo, tag=tag)

        self._enter(outcome, DeleteState.RESOLVING_DIGEST)
        try:
            digest = self.api.resolve_digest(repo, tag)
        except RegistryError as e:
            self._primary_failed(outcome, e)
            return self._fallback(outcome, lambda: tag_path(self.settings.storage_root, repo, tag))
        outcome.digest = digest

        shared = self._tags_sharing_digest(repo, tag, digest)
        if shared is None or shared:
            if shared:
                outcome.error = f"digest {digest} is also referenced by {', '.join(shared)}"
            else:
                outcome.error = f"could not verify whether {digest} is shared with other tags"
            logger.warning(f"Not deleting manifest for {repo}:{tag}: {outcome.error}; "
                           f"removing the tag link only")
            return self._fallback(outcome, lambda: tag_path(self.settings.storage_root, repo, tag))

        self._enter(outcome, DeleteState.DELETING)
        try:
            self.api.delete_manifest(repo, digest)
        except RegistryError as e:
            self._primary_failed(outcome, e)
            return self._fallback(outcome, lambda: tag_path(self.settings.storage_root, repo, tag))

        return self._collect(outcome)

    def delete_repository(self, repo: str) -> List[DeleteOutcome]:
        """
        Delete every tag of a repository, one full tag workflow at a time.

        A repository without tags, or one the registry reports as unknown
        (half-initialized), has its whole directory removed instead.

        Returns:
            One outcome per tag, or a single repository-level outcome

        Raises:
            RegistryError: If the tag list cannot be fetched for reasons other than NotFound
        """
        try:
            tags = self.api.list_tags(repo)
        except NotFound:
            logger.warning(f"Registry does not know repository {repo}; attempting direct cleanup")
            tags = []

        if not tags:
            logger.info(f"Repository {repo} has no valid tags; removing its directory")
            outcome = DeleteOutcome(repository=repo)
            return [self._fallback(outcome, lambda: repository_path(self.settings.storage_root, repo))]

        logger.info(f"Repository {repo} has {len(tags)} tag(s); deleting them one by one")
        return [self.delete_tag(repo, tag) for tag in tags]

    def collect_garbage(self) -> str:
        """
        Run garbage collection, then restart the registry and wait for its API.

        The restart only happens after GC succeeded. A registry that does not
        answer after the restart is logged, not raised: the deletion and GC
        already happened.

        Returns:
            Garbage collector output

        Raises:
            RegistryAdminError: If GC or the restart fails
        """
        output = self.admin.garbage_collect()
        logger.info("Garbage collection completed")
        self.admin.restart()
        if not self.api.wait_until_ready():
            logger.warning("Registry did not answer after restart; following API calls may fall back")
        return output

    def _tags_sharing_digest(self, repo: str, tag: str, digest: str) -> Optional[List[str]]:
        """
        Other tags of `repo` resolving to `digest`.

        Returns None when sharing cannot be verified. With protection disabled
        the check is skipped and the data-loss risk is logged.
        """
        if not self.settings.protect_shared_digests:
            logger.warning(f"Deleting {digest} removes every tag of {repo} that points at it; "
                           f"shared-digest protection is disabled")
            return []

        try:
            others = [t for t in self.api.list_tags(repo) if t != tag]
            return [t for t in others if self._other_tag_digest(repo, t) == digest]
        except RegistryError as e:
            logger.warning(f"Shared-digest check for {repo}:{tag} failed: {e}")
            return None

    def _other_tag_digest(self, repo: str, tag: str) -> Optional[str]:
        # A dangling tag link points at no manifest, so it shares nothing
        try:
            return self.api.resolve_digest(repo, tag)
        except NotFound:
            logger.debug(f"Ignoring stale tag {repo}:{tag} in shared-digest check")
            return None

    def _primary_failed(self, outcome: DeleteOutcome, error: RegistryError) -> None:
        outcome.error = str(error)
        logger.warning(f"API path failed for {outcome.target}: {error}")
        if isinstance(error, DigestNotFound) and error.raw_response:
            logger.debug(f"Manifest response for {outcome.target}:\n{error.raw_response}")

    def _fallback(self, outcome: DeleteOutcome, build_path: Callable[[], str]) -> DeleteOutcome:
        self._enter(outcome, DeleteState.FALLBACK_CLEANUP)
        outcome.used_fallback = True
        try:
            try:
                path = build_path()
            except ValueError as e:
                raise FallbackFailed(f"Refusing fallback cleanup for {outcome.target}", reason=str(e)) from e
            self.admin.remove_path(path)
        except FallbackFailed as e:
            outcome.error = f"{e}: {e.reason}" if e.reason else str(e)
            logger.error(f"Fallback cleanup failed for {outcome.target}: {outcome.error}")
            self._enter(outcome, DeleteState.FAILED)
            return outcome
        return self._collect(outcome)

    def _collect(self, outcome: DeleteOutcome) -> DeleteOutcome:
        self._enter(outcome, DeleteState.RUNNING_GC)
        try:
            self.collect_garbage()
        except RegistryAdminError as e:
            outcome.error = str(e)
            if isinstance(e, GarbageCollectionFailed) and e.output:
                outcome.error = f"{e}: {e.output.strip()}"
            logger.error(f"Garbage collection failed after deleting {outcome.target}: {e}")
            self._enter(outcome, DeleteState.FAILED)
            return outcome
        self._enter(outcome, DeleteState.DONE)
        return outcome

    def _enter(self, outcome: DeleteOutcome, state: DeleteState) -> None:
        outcome.states.append(state)
        logger.debug(f"{outcome.target}: {state.value}")
        if self.on_transition is not None:
            self.on_transition(outcome, state)

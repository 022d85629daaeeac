"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the registry client and
maintenance workflow, centralizing argument validation and wiring while
keeping CLI commands thin and testable.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..maintenance import MaintenanceWorkflow, TransitionCallback
from ..models import DeleteOutcome
from ..settings import Settings
from ..storage.registry_admin import RegistryAdmin
from ..storage.registry_errors import UsageError
from ..storage.registry_http import RegistryHTTP


def _require(value: Optional[str], what: str) -> str:
    """Reject missing or blank command arguments before any network activity."""
    if value is None or not value.strip():
        raise UsageError(f"{what} required")
    return value.strip()


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes output policy so commands don't each read flags.
    """
    verbose: bool = False         # Show detailed output
    json: bool = False            # Machine-readable output for list/tags/delete


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. The HTTP client and the container control path
    are injected (tests pass fakes) or built from settings on first use, so
    argument validation always happens before anything touches the network.
    Exceptions bubble up for central mapping in `run_and_exit`.
    """

    def __init__(self, config: OpsConfig, settings: Settings,
                 client: Optional[RegistryHTTP] = None,
                 admin: Optional[RegistryAdmin] = None):
        """
        Initialize Operations facade.

        Args:
            config: Output configuration
            settings: Validated settings
            client: Registry HTTP client (created from settings if None)
            admin: Registry container control (created from settings if None)
        """
        self.cfg = config
        self.settings = settings
        self._client = client
        self._admin = admin

    @property
    def client(self) -> RegistryHTTP:
        if self._client is None:
            self._client = RegistryHTTP(self.settings)
        return self._client

    @property
    def admin(self) -> RegistryAdmin:
        if self._admin is None:
            self._admin = RegistryAdmin(self.settings)
        return self._admin

    def workflow(self, on_transition: Optional[TransitionCallback] = None) -> MaintenanceWorkflow:
        return MaintenanceWorkflow(self.client, self.admin, self.settings, on_transition=on_transition)

    def list_repositories(self) -> List[str]:
        """List every repository in the catalog."""
        return self.client.list_repositories()

    def list_tags(self, repo: Optional[str]) -> List[str]:
        """
        List tags of a repository.

        Raises:
            UsageError: If repo is missing
            NotFound: If the repository does not exist
        """
        repo = _require(repo, "Repository name")
        return self.client.list_tags(repo)

    def delete(self, repo: Optional[str], tag: Optional[str] = None, *,
               on_transition: Optional[TransitionCallback] = None) -> List[DeleteOutcome]:
        """
        Delete a tag, or a whole repository when no tag is given.

        Args:
            repo: Repository name
            tag: Tag to delete (None deletes every tag of the repository)
            on_transition: Progress callback for workflow state changes

        Returns:
            Outcomes of every workflow run, in execution order

        Raises:
            UsageError: If repo is missing or tag is blank
        """
        repo = _require(repo, "Repository name")
        if tag is not None:
            tag = _require(tag, "Tag")

        workflow = self.workflow(on_transition)
        if tag is None:
            return workflow.delete_repository(repo)
        return [workflow.delete_tag(repo, tag)]

    def gc(self) -> str:
        """Run garbage collection and restart the registry."""
        return self.workflow().collect_garbage()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

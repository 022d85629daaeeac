"""
Administrative control path for the registry container.

Garbage collection, restart and fallback cleanup are not available over the
registry HTTP API; they run inside the registry container through the Docker
Engine API. This assumes the tool runs on the host that runs the registry.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import docker
from docker.errors import DockerException, NotFound as DockerNotFound

from ..settings import Settings
from .registry_errors import (
    FallbackFailed,
    GarbageCollectionFailed,
    RegistryAdminError,
    RegistryContainerNotFound,
)

logger = logging.getLogger(__name__)


class RegistryAdmin:
    """
    Docker-backed access to the running registry container.

    The container is looked up lazily on first use and reused afterwards.
    A restart keeps the same container object valid.
    """

    def __init__(self, settings: Settings, client: Optional[docker.DockerClient] = None):
        """
        Args:
            settings: Settings with container lookup, GC config and storage root
            client: Docker client (defaults to docker.from_env() on first use)
        """
        self.settings = settings
        self._client = client
        self._container = None

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env()
            except DockerException as e:
                raise RegistryAdminError(f"Could not connect to the Docker engine: {e}") from e
        return self._client

    def find_container(self):
        """
        Locate the running registry container.

        Looks up `settings.container_name` when set, otherwise the first
        running container created from `settings.registry_image`.

        Raises:
            RegistryContainerNotFound: If no running container matches
            RegistryAdminError: On Docker engine errors
        """
        if self._container is not None:
            return self._container

        name = self.settings.container_name
        try:
            if name:
                container = self.client.containers.get(name)
                if container.status != "running":
                    raise RegistryContainerNotFound(
                        f"Registry container {name} is {container.status}; start it first "
                        f"(docker compose up -d)"
                    )
            else:
                running = self.client.containers.list(
                    filters={"ancestor": self.settings.registry_image, "status": "running"}
                )
                if not running:
                    raise RegistryContainerNotFound(
                        f"No running container from image {self.settings.registry_image}; "
                        f"start the registry first (docker compose up -d)"
                    )
                container = running[0]
        except DockerNotFound as e:
            raise RegistryContainerNotFound(f"Registry container not found: {name}") from e
        except DockerException as e:
            raise RegistryAdminError(f"Docker engine error looking up registry container: {e}") from e

        logger.debug(f"Using registry container {container.name}")
        self._container = container
        return container

    def garbage_collect(self) -> str:
        """
        Run `registry garbage-collect` inside the container.

        Returns:
            Command output

        Raises:
            GarbageCollectionFailed: If the command exits non-zero
        """
        container = self.find_container()
        command = self.gc_command()
        logger.info(f"Running garbage collection in {container.name}: {' '.join(command)}")

        try:
            result = container.exec_run(command)
        except DockerException as e:
            raise GarbageCollectionFailed(f"Could not exec garbage-collect: {e}") from e

        output = _decode(result.output)
        if result.exit_code != 0:
            raise GarbageCollectionFailed(
                f"Garbage collection exited with code {result.exit_code}", output=output
            )
        return output

    def gc_command(self) -> List[str]:
        command = ["registry", "garbage-collect"]
        if self.settings.gc_delete_untagged:
            command.append("--delete-untagged")
        command.append(self.settings.gc_config)
        return command

    def restart(self) -> None:
        """Restart the registry container so reclaimed space is released."""
        container = self.find_container()
        logger.info(f"Restarting registry container {container.name}")
        try:
            container.restart()
        except DockerException as e:
            raise RegistryAdminError(f"Could not restart {container.name}: {e}") from e

    def remove_path(self, path: str) -> None:
        """
        Remove a path inside the container's storage root.

        Args:
            path: Absolute in-container path built by path_safety helpers

        Raises:
            FallbackFailed: If the container cannot be reached or `rm` fails
        """
        if not path.startswith(self.settings.storage_root.rstrip("/") + "/"):
            raise FallbackFailed(f"Refusing to remove {path}: outside {self.settings.storage_root}")

        try:
            container = self.find_container()
            result = container.exec_run(["rm", "-rf", path])
        except (RegistryAdminError, DockerException) as e:
            raise FallbackFailed(f"Could not remove {path}", reason=str(e)) from e

        if result.exit_code != 0:
            output = _decode(result.output)
            raise FallbackFailed(
                f"Removing {path} exited with code {result.exit_code}", reason=output
            )
        logger.info(f"Removed {path}")


def _decode(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return str(output)

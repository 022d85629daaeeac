"""
Tests for the registry container control path.

Uses a fake Docker client that mirrors the docker SDK surface the admin
relies on (containers.get/list, exec_run, restart).
"""
from __future__ import annotations

from collections import namedtuple
from typing import List, Optional

import pytest
from docker.errors import APIError, NotFound as DockerNotFound

from registry_maint.settings import Settings
from registry_maint.storage.registry_admin import RegistryAdmin
from registry_maint.storage.registry_errors import (
    FallbackFailed,
    GarbageCollectionFailed,
    RegistryAdminError,
    RegistryContainerNotFound,
)

ExecResult = namedtuple("ExecResult", "exit_code,output")

ROOT = "/var/lib/registry/docker/registry/v2/repositories"


class FakeContainer:
    def __init__(self, name: str = "registry", status: str = "running"):
        self.name = name
        self.status = status
        self.commands: List[list] = []
        self.exit_codes: List[int] = []
        self.output = b""
        self.restarts = 0
        self.exec_error: Optional[Exception] = None

    def exec_run(self, cmd):
        self.commands.append(cmd)
        if self.exec_error is not None:
            raise self.exec_error
        code = self.exit_codes.pop(0) if self.exit_codes else 0
        return ExecResult(code, self.output)

    def restart(self):
        self.restarts += 1


class FakeContainers:
    def __init__(self, containers: List[FakeContainer]):
        self._containers = containers
        self.list_filters = []

    def get(self, name):
        for container in self._containers:
            if container.name == name:
                return container
        raise DockerNotFound(f"No such container: {name}")

    def list(self, filters=None):
        self.list_filters.append(filters)
        return [c for c in self._containers if c.status == "running"]


class FakeDockerClient:
    def __init__(self, containers: List[FakeContainer]):
        self.containers = FakeContainers(containers)


class TestFindContainer:
    """Test registry container lookup."""

    def test_find_by_image(self):
        container = FakeContainer()
        client = FakeDockerClient([container])
        admin = RegistryAdmin(Settings(), client=client)

        assert admin.find_container() is container
        assert client.containers.list_filters == [{"ancestor": "registry:latest", "status": "running"}]

    def test_find_by_name(self):
        container = FakeContainer(name="my-registry")
        admin = RegistryAdmin(Settings(container_name="my-registry"), client=FakeDockerClient([container]))

        assert admin.find_container() is container

    def test_lookup_is_cached(self):
        container = FakeContainer()
        client = FakeDockerClient([container])
        admin = RegistryAdmin(Settings(), client=client)

        admin.find_container()
        admin.find_container()

        assert len(client.containers.list_filters) == 1

    def test_no_running_container(self):
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([]))

        with pytest.raises(RegistryContainerNotFound, match="start the registry first"):
            admin.find_container()

    def test_named_container_missing(self):
        admin = RegistryAdmin(Settings(container_name="ghost"), client=FakeDockerClient([]))

        with pytest.raises(RegistryContainerNotFound, match="ghost"):
            admin.find_container()

    def test_named_container_stopped(self):
        container = FakeContainer(name="registry", status="exited")
        admin = RegistryAdmin(Settings(container_name="registry"), client=FakeDockerClient([container]))

        with pytest.raises(RegistryContainerNotFound, match="exited"):
            admin.find_container()


class TestGarbageCollect:
    """Test garbage collection and restart."""

    def test_gc_command(self):
        container = FakeContainer()
        container.output = b"blob eligible for deletion"
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([container]))

        assert admin.garbage_collect() == "blob eligible for deletion"
        assert container.commands == [["registry", "garbage-collect", "/etc/docker/registry/config.yml"]]

    def test_gc_delete_untagged(self):
        container = FakeContainer()
        admin = RegistryAdmin(Settings(gc_delete_untagged=True), client=FakeDockerClient([container]))

        admin.garbage_collect()

        assert container.commands[0][:3] == ["registry", "garbage-collect", "--delete-untagged"]

    def test_gc_failure(self):
        container = FakeContainer()
        container.exit_codes = [1]
        container.output = b"configuration error"
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([container]))

        with pytest.raises(GarbageCollectionFailed) as exc_info:
            admin.garbage_collect()

        assert exc_info.value.output == "configuration error"
        assert container.restarts == 0

    def test_restart(self):
        container = FakeContainer()
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([container]))

        admin.restart()

        assert container.restarts == 1


class TestRemovePath:
    """Test fallback cleanup inside the container."""

    def test_remove_tag_path(self):
        container = FakeContainer()
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([container]))

        admin.remove_path(f"{ROOT}/myapp/_manifests/tags/v1")

        assert container.commands == [["rm", "-rf", f"{ROOT}/myapp/_manifests/tags/v1"]]

    def test_refuses_path_outside_storage_root(self):
        container = FakeContainer()
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([container]))

        with pytest.raises(FallbackFailed, match="outside"):
            admin.remove_path("/etc")
        with pytest.raises(FallbackFailed, match="outside"):
            admin.remove_path(ROOT)

        assert container.commands == []

    def test_rm_failure(self):
        container = FakeContainer()
        container.exit_codes = [1]
        container.output = b"rm: can't remove: Read-only file system"
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([container]))

        with pytest.raises(FallbackFailed) as exc_info:
            admin.remove_path(f"{ROOT}/myapp")

        assert "Read-only" in exc_info.value.reason

    def test_container_missing_is_fallback_failure(self):
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([]))

        with pytest.raises(FallbackFailed):
            admin.remove_path(f"{ROOT}/myapp")

    def test_engine_error_is_fallback_failure(self):
        container = FakeContainer()
        container.exec_error = APIError("engine gone")
        admin = RegistryAdmin(Settings(), client=FakeDockerClient([container]))

        with pytest.raises(FallbackFailed, match="Could not remove"):
            admin.remove_path(f"{ROOT}/myapp")

    def test_engine_error_on_restart(self):
        class BrokenContainer(FakeContainer):
            def restart(self):
                raise APIError("cannot restart")

        admin = RegistryAdmin(Settings(), client=FakeDockerClient([BrokenContainer()]))

        with pytest.raises(RegistryAdminError, match="Could not restart"):
            admin.restart()

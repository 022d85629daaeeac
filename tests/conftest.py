"""Root pytest configuration for registry-maint tests."""
import pytest

from registry_maint.maintenance import MaintenanceWorkflow
from registry_maint.settings import Settings
from registry_maint.storage.registry_http import RegistryHTTP

from .fakes import FakeAdmin, FakeRegistry


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires Docker and a running registry)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Isolate tests from the operator's environment and any certs/ca.crt in cwd."""
    for key in (
        "REGISTRY_MAINT_HOST", "REGISTRY_MAINT_PORT", "REGISTRY_MAINT_CA_CERT",
        "REGISTRY_MAINT_INSECURE", "REGISTRY_MAINT_HTTP_TIMEOUT", "REGISTRY_MAINT_HTTP_RETRY",
        "REGISTRY_MAINT_CONTAINER", "REGISTRY_MAINT_IMAGE", "REGISTRY_MAINT_GC_CONFIG",
        "REGISTRY_MAINT_GC_DELETE_UNTAGGED", "REGISTRY_MAINT_STORAGE_ROOT",
        "REGISTRY_MAINT_PROTECT_SHARED",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("REGISTRY_MAINT_HOST", "registry.test")
    monkeypatch.setenv("REGISTRY_MAINT_PORT", "5001")
    monkeypatch.setenv("REGISTRY_MAINT_READY_ATTEMPTS", "3")
    monkeypatch.setenv("REGISTRY_MAINT_READY_INTERVAL", "0")


@pytest.fixture
def settings():
    """Standard test settings (readiness polls without sleeping)."""
    return Settings(registry_host="registry.test", registry_port=5001, ready_attempts=3, ready_interval_s=0)


@pytest.fixture
def fake_registry():
    """Empty in-memory registry."""
    return FakeRegistry()


@pytest.fixture
def client(settings, fake_registry):
    """Real HTTP client wired to the fake registry."""
    with RegistryHTTP(settings, transport=fake_registry.transport()) as http:
        yield http


@pytest.fixture
def admin(fake_registry, settings):
    """Fake container control that applies removals to the fake registry."""
    return FakeAdmin(registry=fake_registry, storage_root=settings.storage_root)


@pytest.fixture
def workflow(client, admin, settings):
    """Maintenance workflow over the fake registry and fake admin."""
    return MaintenanceWorkflow(client, admin, settings)

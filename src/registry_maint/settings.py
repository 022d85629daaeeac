"""
Settings and configuration for registry-maint.

Centralizes configuration values and provides validation with fail-fast behavior.
Settings are populated once at startup (environment plus CLI overrides) and
passed explicitly to the HTTP client, the admin path and the workflow.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "DEFAULT_CA_CERT"]

DEFAULT_CA_CERT = "certs/ca.crt"
DEFAULT_REGISTRY_IMAGE = "registry:latest"
DEFAULT_GC_CONFIG = "/etc/docker/registry/config.yml"
DEFAULT_STORAGE_ROOT = "/var/lib/registry/docker/registry/v2/repositories"


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the registry maintenance client.

    HTTP API Settings:
        registry_host: Registry hostname or IP address
        registry_port: Registry TLS port
        ca_cert: Path to the CA certificate used as trust anchor (None = system store)
        insecure: Skip certificate verification (development only, never the default)
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Number of retries on timeouts (0=single attempt)
        ready_attempts: Polls of GET /v2/ after a container restart (0=no wait)
        ready_interval_s: Seconds between readiness polls

    Administrative Settings (registry container):
        container_name: Explicit registry container name (None = find by image)
        registry_image: Image ancestor used to find the running registry container
        gc_config: Registry config path inside the container, passed to garbage-collect
        gc_delete_untagged: Pass --delete-untagged to garbage-collect
        storage_root: Repositories root inside the container, used by fallback cleanup
        protect_shared_digests: Skip manifest deletes whose digest is shared with other tags
    """
    # HTTP API settings
    registry_host: str = "localhost"
    registry_port: int = 5000
    ca_cert: Optional[str] = None
    insecure: bool = False
    http_timeout_s: float = 30.0
    http_retry: int = 0
    ready_attempts: int = 15
    ready_interval_s: float = 1.0

    # Administrative settings
    container_name: Optional[str] = None
    registry_image: str = DEFAULT_REGISTRY_IMAGE
    gc_config: str = DEFAULT_GC_CONFIG
    gc_delete_untagged: bool = False
    storage_root: str = DEFAULT_STORAGE_ROOT
    protect_shared_digests: bool = True

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.registry_host:
            raise ValueError("registry_host is required")

        # Hostname or IPv4 address, no scheme and no port
        host_pattern = r"^[a-zA-Z0-9.-]+$"
        if not re.match(host_pattern, self.registry_host):
            raise ValueError(f"Invalid registry_host format: {self.registry_host}")

        if not 0 < self.registry_port < 65536:
            raise ValueError(f"registry_port must be between 1 and 65535, got {self.registry_port}")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if self.ready_attempts < 0:
            raise ValueError(f"ready_attempts must be non-negative, got {self.ready_attempts}")

        if self.ready_interval_s < 0:
            raise ValueError(f"ready_interval_s must be non-negative, got {self.ready_interval_s}")

        if self.ca_cert is not None and self.insecure:
            raise ValueError("Specify either ca_cert OR insecure, not both")

        if not self.storage_root.startswith("/"):
            raise ValueError(f"storage_root must be an absolute path, got {self.storage_root}")

        if not self.registry_image:
            raise ValueError("registry_image is required")

    @property
    def base_url(self) -> str:
        """HTTPS base URL of the registry API."""
        return f"https://{self.registry_host}:{self.registry_port}"

    def with_overrides(self, **overrides) -> Settings:
        """
        Return a copy with the non-None overrides applied.

        Used by the CLI to layer command-line options over environment values.
        Validation runs again on the new instance.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        if changes.get("insecure"):
            # --insecure drops a trust anchor picked up from the environment
            changes.setdefault("ca_cert", None)
        if not changes:
            return self
        return replace(self, **changes)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        HTTP API:
        - REGISTRY_MAINT_HOST (default: localhost)
        - REGISTRY_MAINT_PORT (default: 5000)
        - REGISTRY_MAINT_CA_CERT (default: certs/ca.crt when that file exists)
        - REGISTRY_MAINT_INSECURE (default: false)
        - REGISTRY_MAINT_HTTP_TIMEOUT (default: 30.0)
        - REGISTRY_MAINT_HTTP_RETRY (default: 0)
        - REGISTRY_MAINT_READY_ATTEMPTS (default: 15)
        - REGISTRY_MAINT_READY_INTERVAL (default: 1.0)

        Registry container:
        - REGISTRY_MAINT_CONTAINER (optional)
        - REGISTRY_MAINT_IMAGE (default: registry:latest)
        - REGISTRY_MAINT_GC_CONFIG (default: /etc/docker/registry/config.yml)
        - REGISTRY_MAINT_GC_DELETE_UNTAGGED (default: false)
        - REGISTRY_MAINT_STORAGE_ROOT (default: /var/lib/registry/docker/registry/v2/repositories)
        - REGISTRY_MAINT_PROTECT_SHARED (default: true)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    return _load_settings_impl()


def _load_settings_impl() -> Settings:
    """Internal implementation of settings loading."""
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    insecure = str_to_bool(os.getenv("REGISTRY_MAINT_INSECURE", "false"))

    ca_cert = os.getenv("REGISTRY_MAINT_CA_CERT") or None
    if ca_cert is None and not insecure and Path(DEFAULT_CA_CERT).is_file():
        ca_cert = DEFAULT_CA_CERT

    return Settings(
        registry_host=os.getenv("REGISTRY_MAINT_HOST", "localhost"),
        registry_port=get_int("REGISTRY_MAINT_PORT", 5000),
        ca_cert=ca_cert,
        insecure=insecure,
        http_timeout_s=get_float("REGISTRY_MAINT_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("REGISTRY_MAINT_HTTP_RETRY", 0),
        ready_attempts=get_int("REGISTRY_MAINT_READY_ATTEMPTS", 15),
        ready_interval_s=get_float("REGISTRY_MAINT_READY_INTERVAL", 1.0),
        container_name=os.getenv("REGISTRY_MAINT_CONTAINER") or None,
        registry_image=os.getenv("REGISTRY_MAINT_IMAGE", DEFAULT_REGISTRY_IMAGE),
        gc_config=os.getenv("REGISTRY_MAINT_GC_CONFIG", DEFAULT_GC_CONFIG),
        gc_delete_untagged=str_to_bool(os.getenv("REGISTRY_MAINT_GC_DELETE_UNTAGGED", "false")),
        storage_root=os.getenv("REGISTRY_MAINT_STORAGE_ROOT", DEFAULT_STORAGE_ROOT),
        protect_shared_digests=str_to_bool(os.getenv("REGISTRY_MAINT_PROTECT_SHARED", "true")),
    )

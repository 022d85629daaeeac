"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and the
operations facade, avoiding global state and enabling proper dependency
injection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .operations import Operations, OpsConfig
from .settings import Settings, create_settings_from_env


def configure_logging(verbose: bool = False) -> None:
    """
    Route library logging to stderr through Rich.

    WARNING and above by default, everything with --verbose.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Holds the settings populated once at startup (environment plus command
    line overrides) and the Operations facade built from them on first use.
    """
    settings: Settings
    config: OpsConfig
    _ops: Optional[Operations] = None

    @classmethod
    def from_env(cls, config: OpsConfig, **overrides) -> CLIContext:
        """
        Create CLI context from environment variables and CLI overrides.

        Args:
            config: Output configuration
            **overrides: Settings fields given on the command line (None = not given)

        Returns:
            CLIContext with validated settings
        """
        settings = create_settings_from_env().with_overrides(**overrides)
        return cls(settings=settings, config=config)

    @property
    def ops(self) -> Operations:
        """
        Get or create the Operations facade (lazy initialization).

        Returns:
            Operations instance
        """
        if self._ops is None:
            self._ops = Operations(self.config, self.settings)
        return self._ops

    def close(self) -> None:
        if self._ops is not None:
            self._ops.close()

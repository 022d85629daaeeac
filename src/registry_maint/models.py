"""
Data models for the maintenance workflow.

All values are transient: they describe what the registry returned and what
a workflow did during one invocation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class DeleteState(str, Enum):
    """States of the delete workflow."""
    RESOLVING_DIGEST = "resolving_digest"
    DELETING = "deleting"
    FALLBACK_CLEANUP = "fallback_cleanup"
    RUNNING_GC = "running_gc"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (DeleteState.DONE, DeleteState.FAILED)


@dataclass
class DeleteOutcome:
    """
    Record of one delete workflow run.

    `tag` is None for a whole-repository cleanup. `states` lists every state
    visited in order, ending in a terminal state.
    """
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None
    states: List[DeleteState] = field(default_factory=list)
    used_fallback: bool = False
    error: Optional[str] = None

    @property
    def state(self) -> Optional[DeleteState]:
        return self.states[-1] if self.states else None

    @property
    def succeeded(self) -> bool:
        return self.state is DeleteState.DONE

    @property
    def target(self) -> str:
        return f"{self.repository}:{self.tag}" if self.tag else self.repository

    def to_dict(self) -> dict:
        return {
            "repository": self.repository,
            "tag": self.tag,
            "digest": self.digest,
            "state": self.state.value if self.state else None,
            "states": [s.value for s in self.states],
            "used_fallback": self.used_fallback,
            "error": self.error,
        }

"""
Human-readable output formatting.

Centralizes all CLI output so commands stay thin. Human output goes through
Rich (tables and colored status lines); JSON mode prints plain documents
with typer.echo for scripting.
"""
from __future__ import annotations

import json
from typing import List

import typer
from rich.console import Console
from rich.table import Table
from rich.markup import escape

from ..models import DeleteOutcome, DeleteState
from ..storage.registry_errors import (
    DeleteRejected,
    DigestNotFound,
    FallbackFailed,
    GarbageCollectionFailed,
    WorkflowFailed,
)

_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)

_STATE_MESSAGES = {
    DeleteState.RESOLVING_DIGEST: ("yellow", "Getting manifest for {target}..."),
    DeleteState.DELETING: ("yellow", "Deleting {target} ({digest})..."),
    DeleteState.FALLBACK_CLEANUP: ("yellow", "Attempting direct filesystem cleanup for {target}..."),
    DeleteState.RUNNING_GC: ("yellow", "Running garbage collection and restarting the registry..."),
    DeleteState.DONE: ("green", "Deleted {target}"),
    DeleteState.FAILED: ("red", "Failed to delete {target}: {error}"),
}


def print_repositories(repositories: List[str], as_json: bool = False) -> None:
    """
    Print the registry catalog.

    Args:
        repositories: Repository names
        as_json: Print a JSON document instead of a table
    """
    if as_json:
        typer.echo(json.dumps({"repositories": repositories}, indent=2))
        return

    if not repositories:
        _console.print("[dim]No repositories[/]")
        return

    table = Table(title=f"Repositories ({len(repositories)})")
    table.add_column("Repository", style="cyan")
    for repo in repositories:
        table.add_row(escape(repo))
    _console.print(table)


def print_tags(repo: str, tags: List[str], as_json: bool = False) -> None:
    """
    Print the tags of one repository.

    An empty list is reported as such; it is not an error.
    """
    if as_json:
        typer.echo(json.dumps({"name": repo, "tags": tags}, indent=2))
        return

    if not tags:
        _console.print(f"[yellow]Repository {escape(repo)} has no tags[/]")
        return

    table = Table(title=f"Tags for {escape(repo)}")
    table.add_column("Tag", style="cyan")
    for tag in tags:
        table.add_row(escape(tag))
    _console.print(table)


def print_transition(outcome: DeleteOutcome, state: DeleteState) -> None:
    """Print one line per workflow state, as the workflow enters it."""
    style, template = _STATE_MESSAGES[state]
    message = template.format(
        target=outcome.target,
        digest=outcome.digest or "unknown digest",
        error=outcome.error or "unknown error",
    )
    _console.print(f"[{style}]{escape(message)}[/]")


def print_delete_summary(outcomes: List[DeleteOutcome], as_json: bool = False) -> None:
    """
    Print the result of a delete command.

    Args:
        outcomes: One outcome per tag workflow (or one for a repository cleanup)
        as_json: Print a JSON document instead of a table
    """
    if as_json:
        typer.echo(json.dumps({"outcomes": [o.to_dict() for o in outcomes]}, indent=2))
        return

    table = Table(title="Delete summary")
    table.add_column("Target", style="cyan")
    table.add_column("Digest", style="dim")
    table.add_column("Path")
    table.add_column("Result")

    for outcome in outcomes:
        path = "fallback" if outcome.used_fallback else "api"
        result = "[green]done[/]" if outcome.succeeded else "[red]failed[/]"
        table.add_row(escape(outcome.target), escape(outcome.digest or "-"), path, result)

    _console.print(table)


def print_gc_result(output: str, verbose: bool = False) -> None:
    """Print garbage collection completion, with the collector output when verbose."""
    if verbose and output.strip():
        _console.print(escape(output.rstrip()))
    _console.print("[green]Garbage collection completed successfully[/]")
    _console.print("[green]Registry restarted[/]")


def print_error(exc: BaseException) -> None:
    """
    Print an error with whatever diagnostic context it carries.

    Raw responses, rejected delete bodies and command output are shown so a
    terminal failure is never reported without its cause.
    """
    _err_console.print(f"[red]Error:[/] {escape(str(exc))}")

    if isinstance(exc, DigestNotFound) and exc.raw_response:
        _err_console.print("[yellow]Debug information:[/]")
        _err_console.print(escape(exc.raw_response))
    elif isinstance(exc, DeleteRejected) and exc.body:
        _err_console.print(f"[yellow]Registry response:[/] {escape(exc.body)}")
    elif isinstance(exc, FallbackFailed) and exc.reason:
        _err_console.print(f"[yellow]Reason:[/] {escape(exc.reason)}")
    elif isinstance(exc, GarbageCollectionFailed) and exc.output:
        _err_console.print(escape(exc.output.rstrip()))
    elif isinstance(exc, WorkflowFailed):
        for outcome in exc.outcomes:
            if not outcome.succeeded:
                _err_console.print(f"  {escape(outcome.target)}: {escape(outcome.error or 'unknown error')}")

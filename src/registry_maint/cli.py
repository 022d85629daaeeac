"""
registry-maint CLI

Maintenance commands for a self-hosted container registry:
- list: List repositories in the catalog
- tags: List tags of a repository
- delete: Delete a tag, or every tag of a repository
- gc: Run garbage collection and restart the registry
"""
from __future__ import annotations

from typing import Optional

import typer

from .cli_context import CLIContext, configure_logging
from .operations import OpsConfig, run_and_exit
from .operations.printers import (
    print_delete_summary, print_gc_result, print_repositories, print_tags, print_transition
)
from .storage.registry_errors import WorkflowFailed

app = typer.Typer(
    name="registry-maint",
    help="Maintenance client for a self-hosted container registry",
    invoke_without_command=True,
)


def _context(ctx: typer.Context) -> CLIContext:
    return ctx.obj


@app.callback()
def main(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Registry host (env: REGISTRY_MAINT_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Registry port (env: REGISTRY_MAINT_PORT)"),
    ca_cert: Optional[str] = typer.Option(None, "--ca-cert", help="CA certificate trusted for the registry"),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS verification (development only)"),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
) -> None:
    """Maintenance client for a self-hosted container registry."""
    if ctx.invoked_subcommand is None:
        # Bare invocation is a usage error on every Click version
        typer.echo(ctx.get_help())
        raise typer.Exit(code=2)

    configure_logging(verbose)
    config = OpsConfig(verbose=verbose, json=json_output)

    def _load() -> CLIContext:
        return CLIContext.from_env(
            config,
            registry_host=host,
            registry_port=port,
            ca_cert=ca_cert,
            insecure=True if insecure else None,
        )

    context = run_and_exit(_load)
    ctx.obj = context
    ctx.call_on_close(context.close)


@app.command("list")
def list_(ctx: typer.Context) -> None:
    """List all repositories."""
    context = _context(ctx)
    repositories = run_and_exit(context.ops.list_repositories)
    print_repositories(repositories, as_json=context.config.json)


@app.command()
def tags(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository name"),
) -> None:
    """List tags for a repository."""
    context = _context(ctx)
    tag_list = run_and_exit(lambda: context.ops.list_tags(repo))
    print_tags(repo, tag_list, as_json=context.config.json)


@app.command()
def delete(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository name"),
    tag: Optional[str] = typer.Argument(None, help="Tag to delete (omit to delete every tag)"),
) -> None:
    """Delete a tag, or an entire repository when no tag is given."""
    context = _context(ctx)
    as_json = context.config.json

    def _delete() -> None:
        on_transition = None if as_json else print_transition
        outcomes = context.ops.delete(repo, tag, on_transition=on_transition)
        print_delete_summary(outcomes, as_json=as_json)
        failed = [o for o in outcomes if not o.succeeded]
        if failed:
            raise WorkflowFailed(
                f"{len(failed)} of {len(outcomes)} delete workflow(s) failed", outcomes=failed
            )

    run_and_exit(_delete)


@app.command()
def gc(ctx: typer.Context) -> None:
    """Run garbage collection and restart the registry."""
    context = _context(ctx)
    output = run_and_exit(context.ops.gc)
    print_gc_result(output, verbose=context.config.verbose)


if __name__ == "__main__":
    app()

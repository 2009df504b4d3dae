"""Command line interface for inspecting and driving migrations."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
import yaml

from migraflow import MigrationOrchestrator, PhasePlan, get_cache_store, get_workflow_cache
from migraflow.cache.legacy import purge_deprecated_keys
from migraflow.constants import Step
from migraflow.contracts import WorkflowProgress
from migraflow.errors import MigraflowError

app = typer.Typer(help="CLI for migraflow migrations")

# Command groups
cache_app = typer.Typer(help="Commands for inspecting the local cache")
plan_app = typer.Typer(help="Commands for managing phase plans")
migration_app = typer.Typer(help="Commands for running migrations")

app.add_typer(cache_app, name="cache")
app.add_typer(plan_app, name="plan")
app.add_typer(migration_app, name="migration")


@app.callback()
def main() -> None:
    """Migraflow CLI entry point."""
    pass


def _echo_progress(progress: WorkflowProgress) -> None:
    for result in progress.phase_results:
        status = "ok" if result.succeeded else "FAILED"
        typer.echo(
            f"- phase {result.phase_number} {result.phase_name}: {status} "
            f"({result.files_converted} files)"
        )
        for error in result.errors:
            typer.secho(f"    {error}", fg=typer.colors.RED)
    typer.echo(
        f"Total files: {progress.total_files}  Success rate: {progress.success_rate}%"
    )


# ----------------------------------------------------------------------
# cache
@cache_app.command("list")
def cache_list() -> None:
    """List every key in the cache, including expired ones not yet evicted."""
    store = get_cache_store()
    keys = asyncio.run(store.list_keys())
    if not keys:
        typer.echo("Cache is empty")
        return
    for key in keys:
        typer.echo(key)


@cache_app.command("get")
def cache_get(key: str) -> None:
    """Print the live value stored under KEY as JSON."""
    store = get_cache_store()
    value = asyncio.run(store.get(key))
    if value is None:
        typer.echo("Key not found")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(value, indent=2))


@cache_app.command("clear")
def cache_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove every cached entry."""
    if not yes:
        typer.confirm("Clear all cached workflow state?", abort=True)
    asyncio.run(get_workflow_cache().clear_everything())
    typer.echo("Cache cleared")


@cache_app.command("sweep")
def cache_sweep() -> None:
    """Delete expired entries."""
    removed = asyncio.run(get_cache_store().clear_expired())
    typer.echo(f"Removed {removed} expired entries")


@cache_app.command("purge-legacy")
def cache_purge_legacy() -> None:
    """Delete keys written by token-based clients."""
    removed = asyncio.run(purge_deprecated_keys(get_cache_store()))
    if not removed:
        typer.echo("No deprecated keys found")
        return
    for key in removed:
        typer.echo(f"Removed {key}")


# ----------------------------------------------------------------------
# plan
@plan_app.command("load")
def plan_load(owner: str, repo: str, plan_file: Path) -> None:
    """
    Cache a phase plan for OWNER/REPO from a JSON or YAML file.

    The file holds ``{"phases": [{"number": 1, "name": ..., "file_list": [...]}]}``.

    Example:
        migraflow plan load acme shop ./plan.yaml
    """
    if not plan_file.exists():
        typer.secho("Plan file does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    data = yaml.safe_load(plan_file.read_text()) or {}
    try:
        plan = PhasePlan.model_validate(data)
    except ValueError as exc:
        typer.secho(f"Invalid plan: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    asyncio.run(get_workflow_cache().save_plan(owner, repo, plan))
    typer.echo(f"Cached plan with {len(plan)} phases for {owner}/{repo}")


@plan_app.command("show")
def plan_show(owner: str, repo: str) -> None:
    """Show the cached phase plan for OWNER/REPO."""
    plan = asyncio.run(get_workflow_cache().get_plan(owner, repo))
    if plan is None:
        typer.echo("No plan cached")
        raise typer.Exit(code=1)
    for phase in plan.phases:
        typer.echo(f"{phase.number}. {phase.name} ({len(phase.file_list)} files)")


# ----------------------------------------------------------------------
# migration
@migration_app.command("status")
def migration_status(owner: str, repo: str) -> None:
    """Show cached transformation progress for OWNER/REPO."""
    cache = get_workflow_cache()

    async def _load():
        return await cache.get_progress(owner, repo), await cache.get_step_gate()

    progress, gate = asyncio.run(_load())
    if progress is None:
        typer.echo("No progress cached")
        raise typer.Exit(code=1)
    state = "completed" if progress.completed else "in progress"
    typer.echo(
        f"{owner}/{repo}: {state}, "
        f"{len(progress.phase_results)}/{progress.total_phases} phases"
    )
    typer.echo(f"Current step: {Step(gate.current_step).name.title()}")
    _echo_progress(progress)


@migration_app.command("run")
def migration_run(
    owner: str,
    repo: str,
    user: str = typer.Option(..., "--user", "-u", help="Caller identity"),
) -> None:
    """
    Run or resume the phased migration of OWNER/REPO.

    Phases already recorded in the cache are skipped. Failed phases are
    reported but do not stop the run.

    Example:
        migraflow migration run acme shop --user alice
    """
    orchestrator = MigrationOrchestrator.from_config()

    async def _run() -> WorkflowProgress | None:
        last = None
        try:
            orchestrator.step_gate = await orchestrator.cache.get_step_gate()
            async for snapshot in orchestrator.start_or_fail_migration(owner, repo, user):
                last = snapshot
                latest = snapshot.phase_results[-1]
                status = "ok" if latest.succeeded else "FAILED"
                typer.echo(f"Phase {latest.phase_number}/{snapshot.total_phases}: {status}")
        finally:
            await orchestrator.aclose()
        return last

    try:
        progress = asyncio.run(_run())
    except MigraflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    for warning in orchestrator.warnings:
        typer.secho(f"warning: {warning}", fg=typer.colors.YELLOW)
    if progress is not None:
        _echo_progress(progress)


@migration_app.command("cancel")
def migration_cancel(
    owner: str,
    repo: str,
    user: str = typer.Option(None, "--user", "-u", help="Caller identity"),
) -> None:
    """Cancel the migration of OWNER/REPO and clear its cached state."""
    orchestrator = MigrationOrchestrator.from_config()

    async def _cancel() -> None:
        try:
            orchestrator.step_gate = await orchestrator.cache.get_step_gate()
            await orchestrator.cancel_migration(owner, repo, user)
        finally:
            await orchestrator.aclose()

    asyncio.run(_cancel())
    for warning in orchestrator.warnings:
        typer.secho(f"warning: {warning}", fg=typer.colors.YELLOW)
    typer.echo(f"Cancelled migration of {owner}/{repo}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()

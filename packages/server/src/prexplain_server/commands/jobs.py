"""jobs / requeue commands — inspect the queue store and replay failed jobs."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prexplain_store.models import JobState

console = Console()

_STATE_STYLE = {
    JobState.QUEUED: "cyan",
    JobState.PROCESSING: "yellow",
    JobState.DONE: "green",
    JobState.FAILED: "red",
}


def _open_store(ctx):
    from prexplain_server.queue import build_store

    config = ctx.obj["config"]
    if not config.get("queue_path"):
        raise click.UsageError("No queue_path configured; the in-memory queue can't be inspected.")
    store = build_store(config)
    ctx.call_on_close(store.close)
    return store


@click.command("jobs")
@click.option(
    "--state",
    type=click.Choice([s.value for s in JobState]),
    default=None,
    help="Only show jobs in this state.",
)
@click.option("--limit", default=20, show_default=True, help="Maximum number of jobs to show.")
@click.pass_context
def jobs_cmd(ctx, state: str | None, limit: int):
    """List jobs in the queue store, most recent first."""
    store = _open_store(ctx)

    jobs = store.list_jobs(JobState(state) if state else None)
    if not jobs:
        console.print("[yellow]No jobs found.[/yellow]")
        return

    jobs = list(reversed(jobs))[:limit]

    table = Table(title="Queue", show_header=True, header_style="bold cyan")
    table.add_column("Job", style="bold", justify="right", width=6)
    table.add_column("Pull request", max_width=40)
    table.add_column("SHA", width=8)
    table.add_column("State", width=11)
    table.add_column("Tries", justify="right", width=5)
    table.add_column("Updated At", width=20)
    table.add_column("Error", max_width=50)

    for job in jobs:
        event = job.event
        style = _STATE_STYLE.get(job.state, "white")
        table.add_row(
            str(job.id),
            f"{event.get('owner')}/{event.get('repo_name')}#{event.get('pr_number')}",
            str(event.get("head_sha", ""))[:7],
            f"[{style}]{job.state.value}[/{style}]",
            str(job.attempts),
            job.updated_at[:19].replace("T", " "),
            job.error or "",
        )

    console.print(table)


@click.command("requeue")
@click.argument("job_id", type=int)
@click.pass_context
def requeue_cmd(ctx, job_id: int):
    """Put a failed job back in the queue.

    The running server picks it up on its next wake-up or restart.
    """
    store = _open_store(ctx)
    if not store.requeue(job_id):
        raise click.ClickException(f"Job {job_id} does not exist or has not failed.")
    console.print(f"[green]Job {job_id} re-queued.[/green]")

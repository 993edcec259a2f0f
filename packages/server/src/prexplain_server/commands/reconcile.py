"""reconcile command — run one pull request through the reconciler by hand."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from prexplain_core.errors import ExternalServiceError
from prexplain_core.gh.pull_request import get_pull, get_repo
from prexplain_core.models import Action, ChangeEvent, ReconcileReport
from prexplain_core.reconciler import process_event
from prexplain_core.runtime import build_runtime

console = Console()


def print_report(report: ReconcileReport) -> None:
    console.print(
        f"\n[bold]{report.repo}#{report.pr_number}[/bold]  "
        f"{report.base_sha[:7]}...{report.head_sha[:7]}"
    )
    for path in report.created:
        console.print(f"  [green]explained[/green]  {path}")
    for path in report.removal_targets:
        console.print(f"  [yellow]cleared[/yellow]    {path}")
    for path in report.skipped:
        console.print(f"  [dim]skipped    {path} (not found)[/dim]")
    for failure in report.failures:
        console.print(f"  [red]{failure.operation} failed[/red]  {failure.path}: {failure.detail}")
    console.print(
        f"\n{len(report.created)} comment(s) created, {len(report.deleted)} deleted, "
        f"{len(report.failures)} failure(s)."
    )


@click.command("reconcile")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--head", "head_sha", default=None, help="Head commit SHA. Defaults to the PR's current head.")
@click.option(
    "--compare-against",
    type=click.Choice(["parent", "base"]),
    default=None,
    help="Compare head with its parent commit or with the PR base. Overrides config file.",
)
@click.pass_context
def reconcile_cmd(ctx, repo: str, pr_number: int, head_sha: str | None, compare_against: str | None):
    """Explain a pull request's changed files now, without the webhook.

    Useful to replay a job that failed in the server, or to try a config
    change against a real pull request.
    """
    from prexplain_server.auth import check_credentials

    config = ctx.obj["config"]
    if compare_against:
        config["compare_against"] = compare_against
    check_credentials(config)

    if "/" not in repo:
        raise click.UsageError("--repo must be in owner/name format.")
    owner, name = repo.split("/", 1)

    runtime = build_runtime(config)
    pr = get_pull(get_repo(runtime.github, repo), pr_number)

    event = ChangeEvent(
        action=Action.SYNCHRONIZE,
        owner=owner,
        repo_name=name,
        head_sha=head_sha or pr.head.sha,
        pr_number=pr_number,
        base_sha=pr.base.sha,
        base_ref=pr.base.ref,
    )

    try:
        report = asyncio.run(process_event(event, runtime))
    except ExternalServiceError as e:
        raise click.ClickException(str(e))

    print_report(report)
    if report.failures:
        ctx.exit(1)

"""CLI entry point for prexplain.

Commands:
  serve      — run the webhook server and its queue worker
  reconcile  — reconcile one pull request by hand (e.g. to replay a failed job)
  jobs       — list jobs in the queue store
  requeue    — put a failed job back in the queue
"""

from __future__ import annotations

import importlib.metadata

import click

from prexplain_server.commands.jobs import jobs_cmd, requeue_cmd
from prexplain_server.commands.reconcile import reconcile_cmd
from prexplain_server.commands.serve import serve_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("prexplain"),
    prog_name="prexplain",
)
@click.option(
    "--config",
    "config_path",
    default=".prexplain.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PREXPLAIN_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Explain every file changed in a pull request with an AI-written comment."""
    from prexplain_core.config import load_config
    from prexplain_server.auth import has_app_credentials, resolve_github_token

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except (ValueError, FileNotFoundError) as e:
        raise click.UsageError(str(e))

    if not has_app_credentials(config):
        token = resolve_github_token()
        if token:
            config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(serve_cmd)
main.add_command(reconcile_cmd)
main.add_command(jobs_cmd)
main.add_command(requeue_cmd)

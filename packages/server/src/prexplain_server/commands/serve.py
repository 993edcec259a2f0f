"""serve command — run the webhook server and queue worker."""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.command("serve")
@click.option("--host", default=None, help="Interface to bind. Overrides config file.")
@click.option("--port", type=int, default=None, help="Port to listen on. Overrides config file.")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, ...). Overrides config file.")
@click.pass_context
def serve_cmd(ctx, host: str | None, port: int | None, log_level: str | None):
    """Run the GitHub webhook server.

    Point the GitHub App's webhook at http://<host>:<port>/webhook. Events are
    queued and reconciled one at a time in the background.

    \b
    Required environment variables:
      GITHUB_APP_ID, GITHUB_APP_INSTALLATION_ID, GITHUB_APP_PRIVATE_KEY_PATH
                           GitHub App credentials (or GITHUB_TOKEN)
      OPENAI_API_KEY       Required when model is openai
      ANTHROPIC_API_KEY    Required when model is anthropic
    """
    import uvicorn

    from prexplain_server.app import create_app
    from prexplain_server.auth import check_credentials

    config = ctx.obj["config"]
    check_credentials(config)
    configure_logging(log_level or config.get("log_level", "INFO"))

    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.get("host", "0.0.0.0"),
        port=port or int(config.get("port", 3000)),
        log_config=None,
    )

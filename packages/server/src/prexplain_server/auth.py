"""GitHub credential resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. GitHub App installation (GITHUB_APP_ID, GITHUB_APP_INSTALLATION_ID and
     a private key) — the normal setup for the webhook server
  2. GITHUB_TOKEN environment variable
  3. `gh auth token` (GitHub CLI session — handy for `prexplain reconcile`)
"""

from __future__ import annotations

import logging
import os
import subprocess

import click

logger = logging.getLogger(__name__)


def has_app_credentials(config: dict) -> bool:
    return bool(
        config.get("github_app_id") and config.get("github_installation_id") and config.get("github_private_key")
    )


def _gh_cli_token() -> str | None:
    """Token from the local `gh auth login` session, if there is one."""
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh not installed, or hung on a keyring prompt: no session.
        return None

    token = result.stdout.strip() if result.returncode == 0 else ""
    if token:
        logger.debug("Using GitHub token from the gh CLI session.")
    return token or None


def resolve_github_token() -> str | None:
    """Return a GitHub token for when no GitHub App is configured.

    Never raises. Returns None when neither source has a token;
    check_credentials turns that into a UsageError.
    """
    # GITHUB_TOKEN first: a deployed server must not pick up whatever gh
    # session the host happens to have.
    return os.environ.get("GITHUB_TOKEN") or _gh_cli_token()


def check_credentials(config: dict) -> None:
    """Fail early with a UsageError when GitHub or the model provider can't be reached."""
    if not has_app_credentials(config) and not config.get("github_token"):
        raise click.UsageError(
            "No GitHub credentials found. Set GITHUB_APP_ID, GITHUB_APP_INSTALLATION_ID and "
            "GITHUB_APP_PRIVATE_KEY_PATH, or GITHUB_TOKEN, or run `gh auth login` first."
        )
    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")
    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")

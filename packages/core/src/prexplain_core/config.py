import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_MARKER = "This comment was generated by AI Bot:"

DEFAULT_CONFIG: dict = {
    "model": "openai",
    "model_name": None,  # None = provider default
    "temperature": 0.4,
    "max_tokens": 1024,
    "max_chars_per_file": 20000,
    "max_explanation_chars": 4000,
    "ignore": ["package.json", "package-lock.json"],  # exact paths
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "dist/", "*.min.js")
    "marker": DEFAULT_MARKER,
    "compare_against": "parent",  # "parent" = head's parent commit, "base" = PR base
    "request_timeout": 30,
    "generation_timeout": 120,
    "create_retries": 1,
    "queue_path": ".prexplain-queue.db",  # None = in-memory queue
    "max_attempts": 1,
    "host": "0.0.0.0",
    "port": 3000,
    "log_level": "INFO",
}

_LIST_KEYS = ("ignore", "exclude")


def load_config(config_path: str = ".prexplain.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prexplain.yml in the current directory
      3. CLI argument overrides

    Credentials are always read from the environment, never from the file.
    """
    config = {**DEFAULT_CONFIG, **{key: list(DEFAULT_CONFIG[key]) for key in _LIST_KEYS}}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["compare_against"] not in ("parent", "base"):
        raise ValueError(f"compare_against must be 'parent' or 'base', got {config['compare_against']!r}")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["github_app_id"] = os.environ.get("GITHUB_APP_ID")
    config["github_installation_id"] = os.environ.get("GITHUB_APP_INSTALLATION_ID")
    config["github_private_key"] = _load_private_key()
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

    return config


def _load_private_key() -> Optional[str]:
    """Return the GitHub App private key, inline or from a PEM file."""
    inline = os.environ.get("GITHUB_APP_PRIVATE_KEY")
    if inline:
        return inline

    key_path = os.environ.get("GITHUB_APP_PRIVATE_KEY_PATH")
    if key_path:
        p = Path(key_path).expanduser()
        if not p.exists():
            raise FileNotFoundError(f"GitHub App private key not found: {key_path}")
        return p.read_text()

    return None

"""Fetch the head-revision text of every file that needs an explanation."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from prexplain_core.aio import call_blocking
from prexplain_core.errors import ErrorKind
from prexplain_core.gh.pull_request import get_file_text
from prexplain_core.models import DiffFile, FileContent

logger = logging.getLogger(__name__)


async def fetch_content(
    repo,
    file: DiffFile,
    ref: str,
    timeout: float | None = None,
    max_chars: int | None = None,
) -> FileContent:
    """Return the file's text at ``ref``; ``text`` is None when GitHub says 404."""
    outcome = await call_blocking(get_file_text, repo, file.path, ref, timeout=timeout, what=f"fetch {file.path}")
    if outcome.error is ErrorKind.NOT_FOUND:
        logger.info("Content not found, skipping: %s", outcome.detail)
        return FileContent(path=file.path, text=None)

    text = outcome.value or ""
    if max_chars and len(text) > max_chars:
        text = text[:max_chars] + "\n... [file truncated]"
    return FileContent(path=file.path, text=text)


async def fetch_contents(
    repo,
    files: Iterable[DiffFile],
    ref: str,
    timeout: float | None = None,
    max_chars: int | None = None,
) -> dict[str, FileContent]:
    """Fetch added/modified/renamed files concurrently, keyed by path.

    Removed files are not fetched. Any failure other than not-found
    propagates and aborts the run.
    """
    wanted = [f for f in files if f.status.needs_content]
    results = await asyncio.gather(*(fetch_content(repo, f, ref, timeout, max_chars) for f in wanted))
    return {c.path: c for c in results}

"""Turn a GitHub comparison into DiffFile records and drop ignored paths."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import replace
from typing import Iterable

from prexplain_core.models import DiffFile, FileStatus

logger = logging.getLogger(__name__)


def get_added_lines(patch_text: str | None) -> tuple[str, ...]:
    """Return the inserted lines of a unified patch, without the leading '+'.

    The '+++' file header is not an insertion. A missing patch (binary file,
    or a diff too large for GitHub to inline) yields no lines.
    """
    if not patch_text:
        return ()
    return tuple(
        line[1:] for line in patch_text.splitlines() if line.startswith("+") and not line.startswith("+++")
    )


def parse_diff(files: Iterable) -> list[DiffFile]:
    """Convert comparison files into DiffFile records, preserving order.

    Accepts PyGithub ``File`` objects or anything exposing ``filename``,
    ``status``, ``previous_filename`` and ``patch``. Statuses outside the
    four we reconcile (e.g. "copied", "changed") are dropped here.
    """
    parsed: list[DiffFile] = []
    for f in files:
        try:
            status = FileStatus(f.status)
        except ValueError:
            logger.debug("Ignoring %s with unsupported status %r", f.filename, f.status)
            continue

        previous = getattr(f, "previous_filename", None) if status is FileStatus.RENAMED else None
        parsed.append(
            DiffFile(
                path=f.filename,
                status=status,
                previous_path=previous,
                added_lines=get_added_lines(getattr(f, "patch", None)),
            )
        )
    return parsed


def is_excluded(filename: str, patterns: Iterable[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    A pattern matches when it globs the full path ("src/generated/*.js"),
    globs the basename ("*.min.js"), or names a directory the file sits
    under at any depth ("dist/", "vendor").
    """
    basename = filename.rsplit("/", 1)[-1]
    rooted = "/" + filename
    return any(
        fnmatch.fnmatch(filename, p) or fnmatch.fnmatch(basename, p) or f"/{p.strip('/')}/" in rooted
        for p in patterns
        if p.strip("/")
    )


def filter_ignored(
    files: Iterable[DiffFile],
    ignore: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> list[DiffFile]:
    """Drop files whose path is in ``ignore`` or matches an ``exclude`` pattern.

    A rename whose old path is ignored keeps its new path but loses
    ``previous_path``, so no removal is ever requested for an ignored path.
    """
    ignored = set(ignore)
    patterns = list(exclude)

    def _skip(path: str) -> bool:
        return path in ignored or is_excluded(path, patterns)

    kept = []
    for f in files:
        if _skip(f.path):
            logger.debug("Skipping ignored file: %s", f.path)
            continue
        if f.previous_path and _skip(f.previous_path):
            f = replace(f, previous_path=None)
        kept.append(f)
    return kept

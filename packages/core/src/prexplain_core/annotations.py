"""Decide which bot comments should exist and which must go."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from prexplain_core.aio import call_blocking
from prexplain_core.models import DesiredAnnotation, DiffFile, FileContent, FileStatus

logger = logging.getLogger(__name__)


@dataclass
class Synthesis:
    desired: list[DesiredAnnotation] = field(default_factory=list)
    removals: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def build_body(marker: str, explanation: str) -> str:
    return f"{marker}\n\n{explanation}"


async def synthesize(
    files: Iterable[DiffFile],
    contents: Mapping[str, FileContent],
    explainer,
    commit_sha: str,
    marker: str,
    timeout: float | None = None,
) -> Synthesis:
    """Explain every added/modified/renamed file and collect removal targets.

    A file whose content could not be found is skipped entirely: no comment
    and no removal, exactly as if it were absent from the diff. Generation
    failures propagate and abort the run.
    """
    result = Synthesis()

    for f in files:
        if f.status is FileStatus.REMOVED:
            result.removals.append(f.path)
            continue

        content = contents.get(f.path)
        if content is None or not content.found:
            result.skipped.append(f.path)
            continue

        added_lines = list(f.added_lines) if f.status is FileStatus.MODIFIED else None
        explanation = await call_blocking(
            explainer.explain,
            f.path,
            content.text,
            added_lines,
            timeout=timeout,
            what=f"explain {f.path}",
        )
        result.desired.append(DesiredAnnotation(path=f.path, body=build_body(marker, explanation), commit_sha=commit_sha))

        if f.status is FileStatus.RENAMED and f.previous_path:
            result.removals.append(f.previous_path)

    logger.debug(
        "Synthesized %d annotation(s), %d removal(s), %d skipped",
        len(result.desired),
        len(result.removals),
        len(result.skipped),
    )
    return result


def dedupe(annotations: Iterable[DesiredAnnotation]) -> list[DesiredAnnotation]:
    """Drop structurally identical annotations, keeping first-seen order."""
    return list(dict.fromkeys(annotations))

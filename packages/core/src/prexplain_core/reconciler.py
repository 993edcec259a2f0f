"""Core reconciliation: make the PR's bot comments match the current diff."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from github import GithubException

from prexplain_core.aio import call_blocking
from prexplain_core.annotations import dedupe, synthesize
from prexplain_core.content import fetch_contents
from prexplain_core.diff import filter_ignored, parse_diff
from prexplain_core.errors import AnnotationFailure, ErrorKind, ExternalServiceError, Outcome
from prexplain_core.gh.pull_request import (
    create_file_comment,
    delete_review_comment,
    get_branch_sha,
    get_comparison_files,
    get_parent_sha,
    get_pull,
    get_repo,
    list_review_comments,
)
from prexplain_core.models import ChangeEvent, DesiredAnnotation, ReconcileReport

logger = logging.getLogger(__name__)

# A failed create or delete is reported and the loop moves on. OSError
# covers the transport errors raised under PyGithub by requests. A timeout
# (ExternalServiceError) is not in this set: the call may still land after
# the deadline, so it aborts the run instead of being retried.
_PER_ANNOTATION_ERRORS = (GithubException, OSError)


async def _attempt(fn: Callable[..., Any], *args: Any, timeout: float | None, what: str) -> Outcome:
    try:
        return Outcome.success(await call_blocking(fn, *args, timeout=timeout, what=what))
    except _PER_ANNOTATION_ERRORS as e:
        logger.error("%s failed: %s", what, e)
        return Outcome.failure(ErrorKind.PER_ANNOTATION_FAILURE, str(e))


async def reconcile(
    repo,
    pr,
    desired: Iterable[DesiredAnnotation],
    removals: Iterable[str],
    marker: str,
    timeout: float | None = None,
    create_retries: int = 1,
    report: ReconcileReport | None = None,
) -> ReconcileReport:
    """Apply removals, then replace each desired annotation.

    Existing comments are listed once; a failure there aborts the run. Only
    comments whose body starts with ``marker`` are ever deleted. Every
    removal delete happens before any create, and for a given path the old
    comment is deleted before the new one is created; if that delete fails
    the create is skipped. Individual create/delete failures are recorded on
    the report and do not stop the loop. A timed-out call raises
    ExternalServiceError and aborts the run.
    """
    report = report if report is not None else ReconcileReport()

    try:
        existing = await call_blocking(list_review_comments, pr, timeout=timeout, what="list review comments")
    except GithubException as e:
        raise ExternalServiceError(f"Could not list review comments: {e}") from e

    bot_comments = [c for c in existing if c.has_marker(marker)]
    deleted: set[int] = set()

    async def _delete_at(path: str) -> bool:
        """Delete every marker comment at path. False if one is still there."""
        clear = True
        for comment in bot_comments:
            if comment.path != path or comment.id in deleted:
                continue
            outcome = await _attempt(
                delete_review_comment, pr, comment.id, timeout=timeout, what=f"delete comment {comment.id} on {path}"
            )
            if outcome.ok:
                deleted.add(comment.id)
                report.deleted.append(comment.id)
            else:
                report.failures.append(AnnotationFailure("delete", path, outcome.detail, comment_id=comment.id))
                clear = False
        return clear

    for path in removals:
        report.removal_targets.append(path)
        await _delete_at(path)

    for annotation in desired:
        if not await _delete_at(annotation.path):
            # Creating now would leave two marker comments at this path.
            report.failures.append(
                AnnotationFailure("create", annotation.path, "skipped: an old comment at this path could not be deleted")
            )
            continue

        for attempt in range(create_retries + 1):
            outcome = await _attempt(
                create_file_comment,
                repo,
                pr,
                annotation.path,
                annotation.body,
                annotation.commit_sha,
                timeout=timeout,
                what=f"create comment on {annotation.path}",
            )
            if outcome.ok:
                report.created.append(annotation.path)
                break
            if attempt < create_retries:
                logger.info("Retrying create on %s (%d/%d)", annotation.path, attempt + 1, create_retries)
        else:
            report.failures.append(AnnotationFailure("create", annotation.path, outcome.detail))

    return report


async def resolve_base_sha(repo, event: ChangeEvent, compare_against: str, timeout: float | None = None) -> str:
    """Pick the revision the head is compared with.

    "parent" explains only what the latest push changed; "base" explains the
    whole pull request against its base branch.
    """
    if compare_against == "base":
        if event.base_sha:
            return event.base_sha
        if event.base_ref:
            return await call_blocking(get_branch_sha, repo, event.base_ref, timeout=timeout, what="get branch")
        logger.warning("No base revision on event for %s#%d; comparing with parent", event.full_name, event.pr_number)
    return await call_blocking(get_parent_sha, repo, event.head_sha, timeout=timeout, what="list commits")


async def _run(event: ChangeEvent, runtime, report: ReconcileReport) -> ReconcileReport:
    config = runtime.config
    timeout = config.get("request_timeout")

    repo = await call_blocking(get_repo, runtime.github, event.full_name, timeout=timeout, what="get repo")
    pr = await call_blocking(get_pull, repo, event.pr_number, timeout=timeout, what="get pull request")

    base_sha = await resolve_base_sha(repo, event, config.get("compare_against", "parent"), timeout)
    report.base_sha = base_sha

    raw_files = await call_blocking(
        lambda: list(get_comparison_files(repo, base_sha, event.head_sha)), timeout=timeout, what="compare"
    )
    files = filter_ignored(parse_diff(raw_files), config.get("ignore", []), config.get("exclude", []))
    logger.info(
        "%s#%d %s...%s: %d file(s) to reconcile",
        event.full_name,
        event.pr_number,
        base_sha[:7],
        event.head_sha[:7],
        len(files),
    )

    contents = await fetch_contents(repo, files, event.head_sha, timeout, config.get("max_chars_per_file"))

    synthesis = await synthesize(
        files,
        contents,
        runtime.explainer,
        event.head_sha,
        config["marker"],
        timeout=config.get("generation_timeout"),
    )
    report.skipped.extend(synthesis.skipped)

    return await reconcile(
        repo,
        pr,
        dedupe(synthesis.desired),
        synthesis.removals,
        config["marker"],
        timeout=timeout,
        create_retries=int(config.get("create_retries", 1)),
        report=report,
    )


async def process_event(event: ChangeEvent, runtime) -> ReconcileReport:
    """Run one full reconciliation for a change event.

    Raises ExternalServiceError, tagged with repo/pr/sha, when diff
    acquisition, content fetching, generation or comment listing fails.
    """
    report = ReconcileReport(repo=event.full_name, pr_number=event.pr_number, head_sha=event.head_sha)
    try:
        await _run(event, runtime, report)
    except ExternalServiceError as e:
        raise e.with_context(**event.log_context())
    except GithubException as e:
        raise ExternalServiceError(f"GitHub request failed: {e}", event.log_context()) from e

    logger.info(
        "%s#%d reconciled: %d created, %d deleted, %d failure(s)",
        event.full_name,
        event.pr_number,
        len(report.created),
        len(report.deleted),
        len(report.failures),
    )
    return report

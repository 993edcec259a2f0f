from __future__ import annotations

from github import Auth, Github, GithubException, GithubIntegration

from prexplain_core.errors import ErrorKind, Outcome
from prexplain_core.models import ExistingAnnotation

NOT_FOUND_STATUS = 404


def get_github(config: dict) -> Github:
    """Build an authenticated client from a GitHub App installation or a token.

    App credentials win when all three are configured; otherwise the token
    is used.
    """
    timeout = int(config.get("request_timeout") or 30)
    app_id = config.get("github_app_id")
    installation_id = config.get("github_installation_id")
    private_key = config.get("github_private_key")

    if app_id and installation_id and private_key:
        integration = GithubIntegration(auth=Auth.AppAuth(int(app_id), private_key))
        return integration.get_github_for_installation(int(installation_id))

    token = config.get("github_token")
    if not token:
        raise ValueError("No GitHub credentials configured. Set GITHUB_TOKEN or the GITHUB_APP_* variables.")
    return Github(auth=Auth.Token(token), timeout=timeout)


def get_repo(github: Github, full_name: str):
    return github.get_repo(full_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_parent_sha(repo, head_sha: str) -> str:
    """Return the commit before head, or head itself when it has no history."""
    for i, commit in enumerate(repo.get_commits(sha=head_sha)):
        if i == 1:
            return commit.sha
    return head_sha


def get_branch_sha(repo, branch: str) -> str:
    return repo.get_branch(branch).commit.sha


def get_comparison_files(repo, base_sha: str, head_sha: str):
    """Return files changed between two commits using GitHub's compare API."""
    return repo.compare(base_sha, head_sha).files


def get_file_text(repo, path: str, ref: str) -> Outcome[str]:
    """Fetch a file's text at ``ref``.

    A 404 is reported as NOT_FOUND; every other GitHub error propagates.
    """
    try:
        content = repo.get_contents(path, ref=ref)
    except GithubException as e:
        if e.status == NOT_FOUND_STATUS:
            return Outcome.failure(ErrorKind.NOT_FOUND, f"{path}@{ref[:7]} not found")
        raise
    if isinstance(content, list):
        # A directory now lives at this path.
        return Outcome.failure(ErrorKind.NOT_FOUND, f"{path} is a directory at {ref[:7]}")
    return Outcome.success(content.decoded_content.decode("utf-8", errors="replace"))


def list_review_comments(pr) -> list[ExistingAnnotation]:
    return [ExistingAnnotation(id=c.id, path=c.path, body=c.body or "") for c in pr.get_review_comments()]


def create_file_comment(repo, pr, path: str, body: str, commit_sha: str):
    """Post a review comment attached to the whole file rather than a line."""
    return pr.create_review_comment(
        body=body,
        commit=repo.get_commit(commit_sha),
        path=path,
        subject_type="file",
    )


def delete_review_comment(pr, comment_id: int) -> None:
    pr.get_review_comment(comment_id).delete()

"""Shared fakes for PyGithub objects and the explainer.

The fakes keep an in-memory comment store and a call log, so tests can
assert on both the final state of a PR and the order of writes.
"""

from __future__ import annotations

import itertools
import threading
import time
import types

import pytest
from github import GithubException

from prexplain_core.config import DEFAULT_CONFIG, DEFAULT_MARKER
from prexplain_core.runtime import Runtime

HEAD = "h" * 40
PARENT = "p" * 40
BASE = "b" * 40


def make_file(filename, status="modified", patch=None, previous_filename=None):
    return types.SimpleNamespace(filename=filename, status=status, patch=patch, previous_filename=previous_filename)


class FakeComment:
    def __init__(self, pull, comment_id, path, body):
        self._pull = pull
        self.id = comment_id
        self.path = path
        self.body = body

    def delete(self):
        self._pull._delete(self.id)


class FakePull:
    _ids = itertools.count(1000)

    def __init__(self, number=1, head_sha=HEAD, base_sha=BASE, base_ref="main"):
        self.number = number
        self.head = types.SimpleNamespace(sha=head_sha)
        self.base = types.SimpleNamespace(sha=base_sha, ref=base_ref)
        self.comments: dict[int, FakeComment] = {}
        self.calls: list[tuple] = []
        self.fail_create: dict[str, int] = {}  # path -> number of failures left
        self.fail_delete: set[int] = set()
        self.fail_list = False
        self.create_delay = 0.0  # seconds each create blocks for
        self._lock = threading.Lock()

    def add_comment(self, path, body):
        comment_id = next(self._ids)
        self.comments[comment_id] = FakeComment(self, comment_id, path, body)
        return comment_id

    def bot_comments(self, marker=DEFAULT_MARKER):
        return [c for c in self.comments.values() if c.body.startswith(marker)]

    def get_review_comments(self):
        self.calls.append(("list",))
        if self.fail_list:
            raise GithubException(500, {"message": "boom"}, None)
        return list(self.comments.values())

    def get_review_comment(self, comment_id):
        if comment_id not in self.comments:
            raise GithubException(404, {"message": "Not Found"}, None)
        return self.comments[comment_id]

    def create_review_comment(self, body, commit, path, subject_type=None):
        time.sleep(self.create_delay)
        with self._lock:
            if self.fail_create.get(path, 0) > 0:
                self.fail_create[path] -= 1
                self.calls.append(("create-failed", path))
                raise GithubException(422, {"message": "Unprocessable"}, None)
            self.calls.append(("create", path, commit.sha, subject_type))
            comment_id = self.add_comment(path, body)
        return self.comments[comment_id]

    def _delete(self, comment_id):
        with self._lock:
            if comment_id in self.fail_delete:
                self.calls.append(("delete-failed", comment_id))
                raise GithubException(500, {"message": "boom"}, None)
            comment = self.comments.pop(comment_id)
            self.calls.append(("delete", comment.path, comment_id))


class FakeRepo:
    def __init__(self, files=(), contents=None, pull=None, commits=(HEAD, PARENT), full_name="owner/repo"):
        self.full_name = full_name
        self.files = list(files)
        self.contents = dict(contents or {})
        self.pull = pull or FakePull()
        self.commits = list(commits)
        self.compared: list[tuple[str, str]] = []
        self.content_errors: dict[str, int] = {}  # path -> HTTP status to raise
        self.compare_delay = 0.0

    def compare(self, base, head):
        time.sleep(self.compare_delay)
        self.compared.append((base, head))
        return types.SimpleNamespace(files=list(self.files))

    def get_contents(self, path, ref=None):
        if path in self.content_errors:
            raise GithubException(self.content_errors[path], {"message": "error"}, None)
        if path not in self.contents:
            raise GithubException(404, {"message": "Not Found"}, None)
        return types.SimpleNamespace(decoded_content=self.contents[path].encode("utf-8"))

    def get_commits(self, sha=None):
        return [types.SimpleNamespace(sha=s) for s in self.commits]

    def get_commit(self, sha):
        return types.SimpleNamespace(sha=sha)

    def get_branch(self, branch):
        return types.SimpleNamespace(commit=types.SimpleNamespace(sha=BASE))

    def get_pull(self, number):
        return self.pull


class FakeGithub:
    def __init__(self, repo):
        self.repo = repo

    def get_repo(self, full_name):
        return self.repo


class FakeExplainer:
    def __init__(self, fail_on=(), delay=0.0):
        self.calls: list[tuple] = []
        self.fail_on = set(fail_on)
        self.delay = delay

    def explain(self, file_name, file_content, added_lines=None):
        self.calls.append((file_name, file_content, added_lines))
        time.sleep(self.delay)
        if file_name in self.fail_on:
            from prexplain_core.errors import ExternalServiceError

            raise ExternalServiceError(f"generation failed for {file_name}")
        return f"Explains {file_name}"


@pytest.fixture
def fakes():
    return types.SimpleNamespace(
        Repo=FakeRepo,
        Pull=FakePull,
        Github=FakeGithub,
        Explainer=FakeExplainer,
        file=make_file,
        HEAD=HEAD,
        PARENT=PARENT,
        BASE=BASE,
        MARKER=DEFAULT_MARKER,
    )


@pytest.fixture
def base_config():
    return {
        **DEFAULT_CONFIG,
        "ignore": ["package.json", "package-lock.json"],
        "exclude": [],
        "queue_path": None,
        "request_timeout": 5,
        "generation_timeout": 5,
        "github_token": "tok",
        "openai_api_key": "key",
        "anthropic_api_key": None,
    }


@pytest.fixture
def make_runtime(base_config):
    def _make(repo, explainer=None, **overrides):
        return Runtime(
            config={**base_config, **overrides},
            github=FakeGithub(repo),
            explainer=explainer or FakeExplainer(),
        )

    return _make

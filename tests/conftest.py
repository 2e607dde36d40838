"""Shared test fixtures: in-memory git host and LLM fakes."""

from collections.abc import Sequence

import pytest

from gib.agent import PromptAgent
from gib.errors import HostRequestError
from gib.features.base import Feature, FeatureKind
from gib.features.registry import FEATURE_CLASSES
from gib.hosts.base import GitHost
from gib.llm.base import Llm
from gib.models import ChatMessage, Comment, CompletionParameters, Issue, Label, Repo, User
from gib.settings import PromptSettings

BOT_NAME = "gib[bot]"


class FakeHost(GitHost):
    """Deterministic GitHost backed by dicts. Records every side effect."""

    def __init__(self) -> None:
        self.users = {
            1: User(id=1, nickname="octocat"),
            2: User(id=2, nickname="hubot"),
            99: User(id=99, nickname=BOT_NAME),
        }
        self.repos = {1: Repo(id=1, owner="octocat", name="hello-world")}
        self.issues = {
            (1, 1): Issue(id=1, author_user_id=1, title="Crash on startup", body="The app crashes when I start it."),
        }
        self.comments = {
            (1, 1, 10): Comment(id=10, author_user_id=2, body="Same here, any workaround?"),
            (1, 1, 11): Comment(id=11, author_user_id=99, body="Which OS are you on?"),
        }
        self.labels = {
            1: [
                Label(id=1, name="bug", description="Something isn't working"),
                Label(id=2, name="startup"),
                Label(id=3, name="needs refinement", description="Missing details"),
            ],
        }
        # method name -> error raised on every call
        self.failures: dict[str, Exception] = {}
        # label name -> error raised by assign_label for that label only
        self.label_failures: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.made_comments: list[tuple[int, int, str]] = []
        self.assigned_labels: list[tuple[int, int, str]] = []
        self.closed = False

    @property
    def self_name(self) -> str:
        return BOT_NAME

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.failures:
            raise self.failures[method]

    async def get_user(self, user_id):
        self._enter("get_user")
        try:
            return self.users[user_id]
        except KeyError:
            raise HostRequestError(f"user {user_id} not found") from None

    async def get_repo(self, repo_id):
        self._enter("get_repo")
        return self.repos[repo_id]

    async def get_issue(self, repo_id, issue_id):
        self._enter("get_issue")
        try:
            return self.issues[(repo_id, issue_id)]
        except KeyError:
            raise HostRequestError(f"issue {issue_id} not found") from None

    async def get_comment(self, repo_id, issue_id, comment_id):
        self._enter("get_comment")
        try:
            return self.comments[(repo_id, issue_id, comment_id)]
        except KeyError:
            raise HostRequestError(f"comment {comment_id} not found") from None

    async def make_comment(self, repo_id, issue_id, message):
        self._enter("make_comment")
        self.made_comments.append((repo_id, issue_id, message))

    async def get_repo_labels(self, repo_id):
        self._enter("get_repo_labels")
        return list(self.labels.get(repo_id, []))

    async def assign_label(self, repo_id, issue_id, label_name):
        self._enter("assign_label")
        if label_name in self.label_failures:
            raise self.label_failures[label_name]
        self.assigned_labels.append((repo_id, issue_id, label_name))

    async def aclose(self) -> None:
        self.closed = True


class FakeLlm(Llm):
    """Returns ``reply`` (or raises ``error``) and records every request."""

    def __init__(self, reply: str = "EMPTY") -> None:
        self.reply = reply
        self.error: Exception | None = None
        self.requests: list[tuple[str, list[ChatMessage], CompletionParameters]] = []
        self.closed = False

    async def complete(self, system_message: str, chat: Sequence[ChatMessage], params: CompletionParameters) -> str:
        self.requests.append((system_message, list(chat), params))
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def llm() -> FakeLlm:
    return FakeLlm()


@pytest.fixture
def make_feature(llm: FakeLlm):
    """Build a feature with the packaged default templates and the fake LLM."""

    def _make(kind: FeatureKind, **prompt_settings) -> Feature:
        agent = PromptAgent.from_settings(llm, PromptSettings(**prompt_settings), kind.value)
        return FEATURE_CLASSES[kind](agent)

    return _make

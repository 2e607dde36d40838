"""Abstract base class for git hosts."""

from abc import ABC, abstractmethod

from gib.models import Comment, CommentId, Issue, IssueId, Label, Repo, RepoId, User, UserId


class GitHost(ABC):
    """Read/write operations against a git hosting provider.

    Every operation raises a ``HostError`` subclass on failure. Only
    ``make_comment`` and ``assign_label`` have side effects; callers own any
    retry policy.
    """

    @property
    @abstractmethod
    def self_name(self) -> str:
        """The bot's own login, used to ignore its own comments."""

    @abstractmethod
    async def get_user(self, user_id: UserId) -> User: ...

    @abstractmethod
    async def get_repo(self, repo_id: RepoId) -> Repo: ...

    @abstractmethod
    async def get_issue(self, repo_id: RepoId, issue_id: IssueId) -> Issue: ...

    @abstractmethod
    async def get_comment(self, repo_id: RepoId, issue_id: IssueId, comment_id: CommentId) -> Comment: ...

    @abstractmethod
    async def make_comment(self, repo_id: RepoId, issue_id: IssueId, message: str) -> None: ...

    @abstractmethod
    async def get_repo_labels(self, repo_id: RepoId) -> list[Label]: ...

    # GitHub cannot look labels up by id, so labels are assigned by name.
    @abstractmethod
    async def assign_label(self, repo_id: RepoId, issue_id: IssueId, label_name: str) -> None: ...

    async def aclose(self) -> None:
        return None

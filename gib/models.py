"""Shared pydantic models: the contract between git hosts, LLM backends and features."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]

# Opaque provider handles. Never do arithmetic on them.
RepoId = int
IssueId = int  # per-repository issue number
UserId = int
CommentId = int
LabelId = int


class NewIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["new_issue"] = "new_issue"


class NewComment(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["new_comment"] = "new_comment"
    comment_id: CommentId


EventKind = Annotated[NewIssue | NewComment, Field(discriminator="type")]


class Event(BaseModel):
    """Something happened on the git host. Built by the webhook listener only."""

    model_config = ConfigDict(frozen=True)

    repo_id: RepoId
    issue_id: IssueId
    kind: EventKind


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UserId
    nickname: NonEmptyStr


class Repo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: RepoId
    owner: str
    name: str


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: IssueId
    author_user_id: UserId
    title: NonEmptyStr
    body: str = ""  # can be empty


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: CommentId
    author_user_id: UserId
    body: NonEmptyStr


class Label(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: LabelId
    name: NonEmptyStr
    description: str = ""  # can be empty


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    text: NonEmptyStr


class CompletionParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=1.0, ge=0.0, le=2.0)

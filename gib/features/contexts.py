"""Template contexts: the data prompt templates can see."""

from pydantic import BaseModel, ConfigDict

from gib.models import IssueId, NonEmptyStr


class AuthorContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    nickname: NonEmptyStr


class IssueContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: IssueId
    author: AuthorContext
    title: NonEmptyStr
    body: str  # can be empty


class LabelContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: NonEmptyStr
    description: str  # can be empty


class CommentContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    author: AuthorContext
    body: NonEmptyStr


class ImproveContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue: IssueContext


class LabelingContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue: IssueContext
    labels: list[LabelContext]


class ReplyContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue: IssueContext
    comment: CommentContext

"""Feature contract shared by every bot behavior."""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel

from gib.agent import PromptAgent
from gib.errors import FeatureError, HostError, LlmError, LlmFormatError, TemplateError
from gib.features.contexts import AuthorContext, IssueContext
from gib.hosts.base import GitHost
from gib.models import Event

logger = logging.getLogger(__name__)

# A reply starting with this marker means the model sees nothing to do.
EMPTY_SENTINEL = "EMPTY"


class FeatureKind(str, Enum):
    IMPROVE_ISSUES = "improve-issues"
    LABEL_ISSUES = "label-issues"
    REPLY_COMMENTS = "reply-comments"


class Feature(ABC):
    """One independently pluggable reaction to git events.

    ``process`` filters the event and reads host state (``build_context``), asks
    the model, and writes the reply back (``apply``) unless the reply is the
    ``EMPTY`` sentinel. Template, LLM and host failures surface as
    ``FeatureError`` carrying the feature name.

    Bot actions are git events too. A feature that reacts to comments must
    filter out the bot's own comments or it will answer itself forever.
    """

    kind: FeatureKind

    def __init__(self, agent: PromptAgent) -> None:
        self.agent = agent

    @property
    def name(self) -> str:
        return self.kind.value

    async def process(self, event: Event, host: GitHost) -> None:
        try:
            context = await self.build_context(event, host)
            if context is None:
                return

            reply = await self.agent.ask(context)
            if not reply.strip():
                raise LlmFormatError("LLM returned a blank reply")
            if reply.startswith(EMPTY_SENTINEL):
                logger.info("%s: nothing to do for issue %s", self.name, event.issue_id)
                return

            await self.apply(event, host, reply)
        except (TemplateError, LlmError, HostError) as exc:
            raise FeatureError(self.name, exc) from exc

    @abstractmethod
    async def build_context(self, event: Event, host: GitHost) -> BaseModel | None:
        """Return the template context for event, or None when the event is not for this feature."""

    @abstractmethod
    async def apply(self, event: Event, host: GitHost, reply: str) -> None: ...


async def fetch_issue_context(event: Event, host: GitHost) -> IssueContext:
    """Fetch the event's issue, then its author."""
    issue = await host.get_issue(event.repo_id, event.issue_id)
    author = await host.get_user(issue.author_user_id)
    return IssueContext(
        number=event.issue_id,
        author=AuthorContext(nickname=author.nickname),
        title=issue.title,
        body=issue.body,
    )

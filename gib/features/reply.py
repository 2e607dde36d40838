"""reply-comments: answer new comments on an issue."""

import logging

from gib.features.base import Feature, FeatureKind, fetch_issue_context
from gib.features.contexts import AuthorContext, CommentContext, ReplyContext
from gib.hosts.base import GitHost
from gib.models import Event, NewComment

logger = logging.getLogger(__name__)


class ReplyFeature(Feature):
    kind = FeatureKind.REPLY_COMMENTS

    async def build_context(self, event: Event, host: GitHost) -> ReplyContext | None:
        if not isinstance(event.kind, NewComment):
            return None

        comment = await host.get_comment(event.repo_id, event.issue_id, event.kind.comment_id)
        comment_author = await host.get_user(comment.author_user_id)
        if comment_author.nickname == host.self_name:
            logger.debug("Ignoring own comment %s on issue %s", comment.id, event.issue_id)
            return None

        return ReplyContext(
            issue=await fetch_issue_context(event, host),
            comment=CommentContext(author=AuthorContext(nickname=comment_author.nickname), body=comment.body),
        )

    async def apply(self, event: Event, host: GitHost, reply: str) -> None:
        await host.make_comment(event.repo_id, event.issue_id, reply)

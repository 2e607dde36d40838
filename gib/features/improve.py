"""improve-issues: ask the author for whatever a new issue is missing."""

from gib.features.base import Feature, FeatureKind, fetch_issue_context
from gib.features.contexts import ImproveContext
from gib.hosts.base import GitHost
from gib.models import Event, NewIssue


class ImproveFeature(Feature):
    kind = FeatureKind.IMPROVE_ISSUES

    async def build_context(self, event: Event, host: GitHost) -> ImproveContext | None:
        if not isinstance(event.kind, NewIssue):
            return None
        return ImproveContext(issue=await fetch_issue_context(event, host))

    async def apply(self, event: Event, host: GitHost, reply: str) -> None:
        await host.make_comment(event.repo_id, event.issue_id, reply)

"""label-issues: let the model pick repository labels for a new issue."""

import logging

from gib.errors import HostError, LabelAssignmentError
from gib.features.base import Feature, FeatureKind, fetch_issue_context
from gib.features.contexts import LabelContext, LabelingContext
from gib.hosts.base import GitHost
from gib.models import Event, NewIssue

logger = logging.getLogger(__name__)

LABEL_SEPARATOR = ", "


def parse_labels(reply: str) -> list[str]:
    """Split a model reply into label names, dropping empty entries."""
    names = []
    for token in reply.split(LABEL_SEPARATOR):
        name = token.strip()
        if not name:
            logger.warning("Skipping empty label in model reply %r", reply)
            continue
        names.append(name)
    return names


class LabelFeature(Feature):
    kind = FeatureKind.LABEL_ISSUES

    async def build_context(self, event: Event, host: GitHost) -> LabelingContext | None:
        if not isinstance(event.kind, NewIssue):
            return None
        issue = await fetch_issue_context(event, host)
        labels = await host.get_repo_labels(event.repo_id)
        return LabelingContext(
            issue=issue,
            labels=[LabelContext(name=label.name, description=label.description) for label in labels],
        )

    async def apply(self, event: Event, host: GitHost, reply: str) -> None:
        # Every label is attempted; a rejected one does not block the rest.
        failures: dict[str, HostError] = {}
        for name in parse_labels(reply):
            try:
                await host.assign_label(event.repo_id, event.issue_id, name)
            except HostError as exc:
                logger.warning("Unable to assign label %r to issue %s: %s", name, event.issue_id, exc)
                failures[name] = exc
        if failures:
            raise LabelAssignmentError(failures)

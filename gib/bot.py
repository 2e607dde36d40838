"""GitBot: fan one event out to every enabled feature."""

import asyncio
import logging
from collections.abc import Sequence

from gib.errors import FeatureError, FeaturesError, NoFeaturesSelectedError
from gib.features.base import Feature
from gib.hosts.base import GitHost
from gib.models import Event

logger = logging.getLogger(__name__)


class GitBot:
    """Runs every feature on every event.

    A failing feature never prevents the others from running. Failures are
    collected and raised together as ``FeaturesError``, keyed by feature name
    in construction order.
    """

    def __init__(self, host: GitHost, features: Sequence[Feature], *, concurrent: bool = False) -> None:
        if not features:
            raise NoFeaturesSelectedError()
        names = [feature.name for feature in features]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate features: {names}")
        self.host = host
        self.features = list(features)
        self.concurrent = concurrent

    async def process_event(self, event: Event) -> None:
        logger.info("Processing %s on repo %s issue %s", event.kind.type, event.repo_id, event.issue_id)
        if self.concurrent:
            results = await asyncio.gather(*(self._run(feature, event) for feature in self.features))
        else:
            results = [await self._run(feature, event) for feature in self.features]

        errors = {feature.name: error for feature, error in zip(self.features, results) if error is not None}
        if errors:
            raise FeaturesError(errors)

    async def _run(self, feature: Feature, event: Event) -> FeatureError | None:
        try:
            await feature.process(event, self.host)
        except FeatureError as exc:
            logger.warning("%s", exc)
            return exc
        except Exception as exc:
            logger.exception("Unexpected error in feature '%s'", feature.name)
            return FeatureError(feature.name, exc)
        return None

"""Feature selection: allow-list / deny-list resolution and construction."""

import logging
from collections.abc import Iterable

from gib.agent import PromptAgent
from gib.errors import NoFeaturesSelectedError, UnknownFeatureError
from gib.features.base import Feature, FeatureKind
from gib.features.improve import ImproveFeature
from gib.features.label import LabelFeature
from gib.features.reply import ReplyFeature
from gib.llm.base import Llm
from gib.settings import GibSettings

logger = logging.getLogger(__name__)

FEATURE_CLASSES: dict[FeatureKind, type[Feature]] = {
    FeatureKind.IMPROVE_ISSUES: ImproveFeature,
    FeatureKind.LABEL_ISSUES: LabelFeature,
    FeatureKind.REPLY_COMMENTS: ReplyFeature,
}


def parse_feature_names(names: Iterable[str]) -> set[FeatureKind]:
    kinds = set()
    for name in names:
        try:
            kinds.add(FeatureKind(name))
        except ValueError:
            raise UnknownFeatureError(name) from None
    return kinds


def compute_enabled_features(allow_list: bool, names: Iterable[str]) -> list[FeatureKind]:
    """With allow_list, ``names`` are the enabled features; otherwise they are the disabled ones.

    The result keeps the canonical feature order and is never empty.
    """
    listed = parse_feature_names(names)
    if allow_list:
        enabled = [kind for kind in FeatureKind if kind in listed]
    else:
        enabled = [kind for kind in FeatureKind if kind not in listed]
    if not enabled:
        raise NoFeaturesSelectedError()
    return enabled


def build_feature(kind: FeatureKind, llm: Llm, settings: GibSettings) -> Feature:
    agent = PromptAgent.from_settings(llm, settings.prompt_settings(kind.value), kind.value)
    return FEATURE_CLASSES[kind](agent)


def build_features(kinds: Iterable[FeatureKind], llm: Llm, settings: GibSettings) -> list[Feature]:
    features = [build_feature(kind, llm, settings) for kind in kinds]
    logger.info("Enabled features: %s", ", ".join(feature.name for feature in features))
    return features

"""Error taxonomy shared by hosts, LLM backends, features and the bot."""

from collections.abc import Mapping


class GibError(Exception):
    """Base class for every error raised by gib."""


class TemplateError(GibError):
    """A prompt template could not be loaded, parsed or rendered."""


# ---------------------------------------------------------------------------
# Git host
# ---------------------------------------------------------------------------


class HostError(GibError):
    """A git host operation failed."""


class HostKeyReadError(HostError):
    """Credentials for the git host could not be read."""


class HostRequestError(HostError):
    """The git host API could not be reached or rejected the request."""


class HostInvalidFormatError(HostError):
    """The git host API answered with an unexpected payload."""


class HostUnknownError(HostError):
    pass


class LabelAssignmentError(HostError):
    """One or more labels could not be assigned to an issue."""

    def __init__(self, failures: Mapping[str, HostError]) -> None:
        self.failures = dict(failures)
        names = ", ".join(self.failures)
        super().__init__(f"unable to assign labels: {names}")


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------


class LlmError(GibError):
    """A completion backend call failed."""


class LlmRequestError(LlmError):
    """The completion API could not be reached, refused auth or failed."""


class LlmFormatError(LlmError):
    """The completion API answered without usable content."""


# ---------------------------------------------------------------------------
# Features and bot
# ---------------------------------------------------------------------------


class FeatureError(GibError):
    """A feature failed to process an event.

    ``cause`` is the underlying template, LLM or host error. Anything else is a
    bug in the feature and is reported with kind ``unknown``.
    """

    def __init__(self, feature: str, cause: Exception) -> None:
        self.feature = feature
        self.cause = cause
        super().__init__(f"feature '{feature}' failed: {cause}")

    @property
    def kind(self) -> str:
        match self.cause:
            case TemplateError():
                return "template"
            case LlmError():
                return "llm"
            case HostError():
                return "host"
            case _:
                return "unknown"


class FeaturesError(GibError):
    """Some features failed on the same event. Maps feature name to its error."""

    def __init__(self, errors: Mapping[str, FeatureError]) -> None:
        if not errors:
            raise ValueError("FeaturesError requires at least one feature error")
        self.errors = dict(errors)
        super().__init__(f"some features returned error: {', '.join(self.errors)}")


class UnknownFeatureError(GibError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"specified feature does not exist: '{name}'")


class NoFeaturesSelectedError(GibError):
    def __init__(self) -> None:
        super().__init__("you must enable at least one feature")

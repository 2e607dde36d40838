"""Prompt templates: compile ``system_message`` / ``user_message`` once, render per event."""

from pathlib import Path

import jinja2
from pydantic import BaseModel, ConfigDict

from gib.errors import TemplateError

SYSTEM_MESSAGE_TEMPLATE = "system_message"
USER_MESSAGE_TEMPLATE = "user_message"

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


class RenderedPrompt(BaseModel):
    model_config = ConfigDict(frozen=True)

    system_message: str
    user_message: str


class PromptRenderer:
    """Jinja2 templates for one feature.

    Context fields are exposed as top-level variables, so templates read
    ``{{ issue.author.nickname }}`` or loop with ``{% for label in labels %}``.
    Referencing a field the context does not have is an error, never an empty
    substitution.
    """

    def __init__(self, system_message: str, user_message: str) -> None:
        sources = {
            SYSTEM_MESSAGE_TEMPLATE: system_message,
            USER_MESSAGE_TEMPLATE: user_message,
        }
        for name, source in sources.items():
            if not source.strip():
                raise TemplateError(f"template '{name}' is empty")

        self._env = jinja2.Environment(
            loader=jinja2.DictLoader(sources),
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        try:
            self._templates = {name: self._env.get_template(name) for name in sources}
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateError(f"template '{exc.name}' line {exc.lineno}: {exc.message}") from exc

    @classmethod
    def from_files(cls, system_message_path: Path, user_message_path: Path) -> "PromptRenderer":
        return cls(read_template(system_message_path), read_template(user_message_path))

    def render(self, context: BaseModel) -> RenderedPrompt:
        variables = context.model_dump()
        return RenderedPrompt(
            system_message=self._render(SYSTEM_MESSAGE_TEMPLATE, variables),
            user_message=self._render(USER_MESSAGE_TEMPLATE, variables),
        )

    def _render(self, name: str, variables: dict) -> str:
        try:
            text = self._templates[name].render(**variables)
        except jinja2.UndefinedError as exc:
            raise TemplateError(f"template '{name}' references a missing field: {exc.message}") from exc
        except jinja2.TemplateError as exc:
            raise TemplateError(f"unable to render template '{name}': {exc}") from exc
        if not text.strip():
            raise TemplateError(f"rendered template '{name}' is empty")
        return text


def read_template(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateError(f"unable to read template {path}: {exc}") from exc

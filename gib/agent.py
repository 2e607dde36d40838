"""Prompt agent: render a feature context and ask the completion backend about it."""

import logging
from pathlib import Path

from pydantic import BaseModel

from gib.llm.base import Llm
from gib.models import ChatMessage, CompletionParameters
from gib.settings import PromptSettings
from gib.templating import (
    DEFAULT_TEMPLATES_DIR,
    SYSTEM_MESSAGE_TEMPLATE,
    USER_MESSAGE_TEMPLATE,
    PromptRenderer,
    RenderedPrompt,
    read_template,
)

logger = logging.getLogger(__name__)


class PromptAgent:
    def __init__(self, llm: Llm, renderer: PromptRenderer, params: CompletionParameters | None = None) -> None:
        self.llm = llm
        self.renderer = renderer
        self.params = params or CompletionParameters()

    @classmethod
    def from_settings(cls, llm: Llm, settings: PromptSettings, feature_name: str) -> "PromptAgent":
        """Compile the feature's templates from settings, falling back to the packaged defaults."""
        defaults = DEFAULT_TEMPLATES_DIR / feature_name
        renderer = PromptRenderer(
            _template_source(
                settings.system_message_template,
                settings.system_message_template_path,
                defaults / f"{SYSTEM_MESSAGE_TEMPLATE}.j2",
            ),
            _template_source(
                settings.user_message_template,
                settings.user_message_template_path,
                defaults / f"{USER_MESSAGE_TEMPLATE}.j2",
            ),
        )
        return cls(llm, renderer, CompletionParameters(temperature=settings.temperature))

    def render(self, context: BaseModel) -> RenderedPrompt:
        prompt = self.renderer.render(context)
        logger.debug("Rendered system message:\n%s", prompt.system_message)
        logger.debug("Rendered user message:\n%s", prompt.user_message)
        return prompt

    async def ask(self, context: BaseModel) -> str:
        prompt = self.render(context)
        reply = await self.llm.complete(
            prompt.system_message,
            [ChatMessage(role="user", text=prompt.user_message)],
            self.params,
        )
        logger.debug("Resulting AI message:\n%s", reply)
        return reply


def _template_source(text: str | None, path: Path | None, default_path: Path) -> str:
    if text is not None:
        return text
    return read_template(path or default_path)

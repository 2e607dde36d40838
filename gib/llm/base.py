"""Abstract base class for completion backends."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from gib.models import ChatMessage, CompletionParameters


class Llm(ABC):
    """One chat turn against a language model. Keeps no conversation state between calls."""

    @abstractmethod
    async def complete(
        self,
        system_message: str,
        chat: Sequence[ChatMessage],
        params: CompletionParameters,
    ) -> str: ...

    async def aclose(self) -> None:
        return None

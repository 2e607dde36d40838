"""OpenAI-compatible chat completions backend."""

import logging
from collections.abc import Sequence

import httpx
from pydantic import SecretStr

from gib.errors import LlmFormatError, LlmRequestError
from gib.llm.base import Llm
from gib.models import ChatMessage, CompletionParameters

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAiLlm(Llm):
    def __init__(
        self,
        api_key: SecretStr,
        model: str,
        api_base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60,
    ) -> None:
        if not model:
            raise ValueError("model name must not be empty")
        self._model = model
        self._base_url = api_base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {api_key.get_secret_value()}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    async def complete(
        self,
        system_message: str,
        chat: Sequence[ChatMessage],
        params: CompletionParameters,
    ) -> str:
        if not system_message:
            raise ValueError("system message must not be empty")

        messages = [{"role": "system", "content": system_message}]
        messages += [{"role": message.role, "content": message.text} for message in chat]
        body = {"model": self._model, "messages": messages, "temperature": params.temperature}

        try:
            response = await self._client.post(f"{self._base_url}/chat/completions", json=body)
        except httpx.HTTPError as exc:
            raise LlmRequestError(f"unable to send request to LLM: {exc}") from exc

        if response.status_code == 401:
            raise LlmRequestError("LLM API returned 401. Check the configured API key.")
        if response.is_error:
            raise LlmRequestError(f"LLM API returned {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LlmFormatError("LLM API returned message in the wrong format") from exc
        if not isinstance(content, str) or not content.strip():
            raise LlmFormatError("LLM API returned an empty message")

        usage = data.get("usage") or {}
        logger.debug(
            "completion ok: model=%s prompt_tokens=%s completion_tokens=%s",
            self._model,
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
        )
        return content

    async def aclose(self) -> None:
        await self._client.aclose()

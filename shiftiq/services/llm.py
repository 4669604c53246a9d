from typing import Dict, List, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from ..config import Settings
from ..errors import LLMConfigurationError, ProviderError


PERPLEXITY_BASE_URL = "https://api.perplexity.ai"


class OpenAIChat:
    """Chat completions through the OpenAI SDK."""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client

    def get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.OPENAI_API_KEY:
                raise LLMConfigurationError(
                    "OPENAI_API_KEY is not set. Please configure OPENAI_API_KEY in environment variables."
                )
            self._client = AsyncOpenAI(
                api_key=self.settings.OPENAI_API_KEY,
                timeout=self.settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> str:
        client = self.get_client()
        extra = {"max_tokens": max_tokens} if max_tokens is not None else {}
        try:
            chat = await client.chat.completions.create(
                model=self.settings.OPENAI_MODEL,
                messages=messages,
                temperature=temperature,
                **extra,
            )
        except OpenAIError as e:
            raise ProviderError(f"OpenAI API error: {e}") from e
        if not chat.choices:
            return ""
        return chat.choices[0].message.content or ""


class PerplexityChat:
    """Chat completions against Perplexity's OpenAI-compatible endpoint."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
    ) -> str:
        if not self.settings.PERPLEXITY_API_KEY:
            raise LLMConfigurationError(
                "PERPLEXITY_API_KEY is not set. Please configure PERPLEXITY_API_KEY in environment variables."
            )

        headers = {
            "Authorization": f"Bearer {self.settings.PERPLEXITY_API_KEY}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.settings.PERPLEXITY_MODEL,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        async with httpx.AsyncClient(
            base_url=PERPLEXITY_BASE_URL,
            timeout=httpx.Timeout(self.settings.LLM_TIMEOUT_SECONDS),
            transport=self._transport,
        ) as client:
            try:
                resp = await client.post("/chat/completions", json=payload, headers=headers)
            except httpx.HTTPError as e:
                raise ProviderError(f"Perplexity request failed: {e}") from e
            try:
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                try:
                    detail = resp.json()
                except ValueError:
                    detail = {"text": resp.text}
                raise ProviderError(f"Perplexity API error {resp.status_code}: {detail}") from e
            data = resp.json()

        choices = data.get("choices") or [{}]
        return (choices[0].get("message", {}) or {}).get("content", "") or ""


def build_chat_provider(settings: Settings):
    provider = (settings.LLM_PROVIDER or "openai").lower()
    if provider == "perplexity":
        return PerplexityChat(settings)
    if provider == "openai":
        return OpenAIChat(settings)
    raise LLMConfigurationError(f"Unknown LLM_PROVIDER: {settings.LLM_PROVIDER}")

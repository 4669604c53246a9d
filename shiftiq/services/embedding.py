from typing import List, Optional
from openai import AsyncOpenAI, OpenAIError
from ..config import Settings
from ..errors import LLMConfigurationError, ProviderError


class OpenAIEmbedder:
    """Embeds one text per call with the configured OpenAI embedding model."""

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

    async def embed(self, text: str) -> List[float]:
        client = self.get_client()
        try:
            resp = await client.embeddings.create(model=self.settings.OPENAI_EMBED_MODEL, input=text)
        except OpenAIError as e:
            raise ProviderError(f"OpenAI embedding error: {e}") from e
        if not resp.data:
            raise ProviderError("OpenAI embedding response contained no vectors")
        return list(resp.data[0].embedding)

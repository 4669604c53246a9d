import json
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
from openai import OpenAIError

from shiftiq.errors import LLMConfigurationError, ProviderError
from shiftiq.services.extract import extract_text
from shiftiq.services.embedding import OpenAIEmbedder
from shiftiq.services.llm import OpenAIChat, PerplexityChat, build_chat_provider

from fakes import make_settings


class TestPerplexityChat(unittest.IsolatedAsyncioTestCase):
    async def test_posts_chat_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "Use the house pour."}}]})

        settings = make_settings(PERPLEXITY_API_KEY="pplx", PERPLEXITY_MODEL="sonar")
        chat = PerplexityChat(settings, transport=httpx.MockTransport(handler))
        text = await chat.complete([{"role": "user", "content": "Rail or call?"}], temperature=0.1, max_tokens=50)

        self.assertEqual(text, "Use the house pour.")
        self.assertEqual(seen["auth"], "Bearer pplx")
        self.assertEqual(seen["body"]["model"], "sonar")
        self.assertEqual(seen["body"]["max_tokens"], 50)
        self.assertEqual(seen["body"]["temperature"], 0.1)

    async def test_http_error_becomes_provider_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"error": "busy"}))
        chat = PerplexityChat(make_settings(PERPLEXITY_API_KEY="pplx"), transport=transport)
        with self.assertRaises(ProviderError):
            await chat.complete([{"role": "user", "content": "Hi"}])

    async def test_missing_key(self):
        with self.assertRaises(LLMConfigurationError):
            await PerplexityChat(make_settings(PERPLEXITY_API_KEY="")).complete([])

    def test_provider_selection(self):
        self.assertIsInstance(build_chat_provider(make_settings(LLM_PROVIDER="perplexity")), PerplexityChat)
        self.assertIsInstance(build_chat_provider(make_settings(LLM_PROVIDER="OpenAI")), OpenAIChat)
        with self.assertRaises(LLMConfigurationError):
            build_chat_provider(make_settings(LLM_PROVIDER="nope"))


def fake_openai(embedding=None, reply=None, error=None):
    """Stand-in for AsyncOpenAI exposing only the two calls the providers make."""
    embed = AsyncMock(side_effect=error, return_value=SimpleNamespace(
        data=[SimpleNamespace(embedding=embedding)] if embedding is not None else []))
    complete = AsyncMock(side_effect=error, return_value=SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=reply))]))
    return SimpleNamespace(embeddings=SimpleNamespace(create=embed),
                           chat=SimpleNamespace(completions=SimpleNamespace(create=complete)))


class TestOpenAIEmbedder(unittest.IsolatedAsyncioTestCase):
    async def test_returns_first_vector(self):
        client = fake_openai(embedding=[0.1, 0.2, 0.3])
        settings = make_settings(OPENAI_EMBED_MODEL="text-embedding-3-small")
        vector = await OpenAIEmbedder(settings, client=client).embed("Pour the stout")
        self.assertEqual(vector, [0.1, 0.2, 0.3])
        client.embeddings.create.assert_awaited_once_with(model="text-embedding-3-small", input="Pour the stout")

    async def test_sdk_error_becomes_provider_error(self):
        embedder = OpenAIEmbedder(make_settings(), client=fake_openai(error=OpenAIError("boom")))
        with self.assertRaises(ProviderError):
            await embedder.embed("Pour the stout")

    async def test_empty_response_is_provider_error(self):
        with self.assertRaises(ProviderError):
            await OpenAIEmbedder(make_settings(), client=fake_openai()).embed("x")

    async def test_missing_key(self):
        with self.assertRaises(LLMConfigurationError):
            await OpenAIEmbedder(make_settings(OPENAI_API_KEY="")).embed("x")


class TestOpenAIChat(unittest.IsolatedAsyncioTestCase):
    async def test_returns_message_content(self):
        client = fake_openai(reply="Two-part pour.")
        chat = OpenAIChat(make_settings(OPENAI_MODEL="gpt-4o-mini"), client=client)
        messages = [{"role": "user", "content": "How do I pour a stout?"}]
        self.assertEqual(await chat.complete(messages, temperature=0.1, max_tokens=50), "Two-part pour.")
        client.chat.completions.create.assert_awaited_once_with(
            model="gpt-4o-mini", messages=messages, temperature=0.1, max_tokens=50)

    async def test_max_tokens_omitted_when_unset(self):
        client = fake_openai(reply=None)
        self.assertEqual(await OpenAIChat(make_settings(), client=client).complete([]), "")
        self.assertNotIn("max_tokens", client.chat.completions.create.await_args.kwargs)

    async def test_sdk_error_becomes_provider_error(self):
        chat = OpenAIChat(make_settings(), client=fake_openai(error=OpenAIError("boom")))
        with self.assertRaises(ProviderError):
            await chat.complete([{"role": "user", "content": "Hi"}])

    async def test_missing_key(self):
        with self.assertRaises(LLMConfigurationError):
            await OpenAIChat(make_settings(OPENAI_API_KEY="")).complete([])


class TestExtractText(unittest.TestCase):
    def test_plain_text_is_decoded(self):
        text, file_type = extract_text("menu.txt", "Café hours: 7am to 3pm".encode("utf-8"))
        self.assertEqual(file_type, "text")
        self.assertIn("hours: 7am to 3pm", text)

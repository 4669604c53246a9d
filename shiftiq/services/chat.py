import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..errors import InvalidRequest, NotFound
from .classifier import TopicClassifier
from .store import ChunkMatch

logger = logging.getLogger(__name__)

SOURCE_INTERNAL = "internal"
SOURCE_FALLBACK = "fallback"
SOURCE_ERROR = "error"

ESCALATION_MESSAGE = "That topic isn't in the system. Ask your manager or submit it for review."
EMPTY_COMPLETION = "I apologize, but I could not generate a response."
APOLOGY = "I apologize, but I encountered an error processing your request. Please try again."

GROUNDED_SYSTEM = (
    "You are ShiftIQ, an AI assistant for restaurant and hospitality operations. "
    "Answer using only the internal documents provided below. "
    "If the documents don't contain enough information, say so clearly.\n\n"
    "Context from internal documents:\n{context}"
)

FALLBACK_SYSTEM = (
    "You are ShiftIQ, an AI assistant specialized in restaurant operations, hospitality, "
    "POS systems, craft beer, and cocktails. Provide helpful, accurate information for "
    "{topic} questions. Keep responses concise and practical."
)


@dataclass
class ChatResult:
    response: str
    source: str
    source_documents: List[Dict[str, Any]] = field(default_factory=list)


def build_context(matches: List[ChunkMatch]) -> str:
    return "\n\n".join(
        f"Document: {m.title}\nCategory: {m.category}\nContent: {m.content}" for m in matches
    )


class ChatPipeline:
    """Answers one chat turn from retrieved documents or the topic-gated fallback, then saves it."""

    def __init__(self, store, embedder, chat, settings: Settings, classifier: Optional[TopicClassifier] = None):
        self.store = store
        self.embedder = embedder
        self.chat = chat
        self.settings = settings
        self.classifier = classifier or TopicClassifier(
            chat,
            settings.allowed_topics,
            temperature=settings.CLASSIFY_TEMPERATURE,
            max_tokens=settings.CLASSIFY_MAX_TOKENS,
        )

    async def _retrieve(self, vector: List[float]) -> List[ChunkMatch]:
        try:
            return await self.store.search_chunks(
                vector,
                match_count=self.settings.MATCH_COUNT,
                threshold=self.settings.SIMILARITY_THRESHOLD,
            )
        except Exception:
            # search failure degrades to the fallback path
            logger.exception("Vector search error")
            return []

    async def _complete(self, system: str, message: str) -> str:
        text = await self.chat.complete(
            [{"role": "system", "content": system}, {"role": "user", "content": message}],
            temperature=self.settings.ANSWER_TEMPERATURE,
            max_tokens=self.settings.ANSWER_MAX_TOKENS,
        )
        return text.strip() or EMPTY_COMPLETION

    async def _grounded(self, message: str, matches: List[ChunkMatch]) -> ChatResult:
        answer = await self._complete(GROUNDED_SYSTEM.format(context=build_context(matches)), message)
        docs = [
            {"title": m.title, "content": m.content, "similarity": m.similarity, "category": m.category}
            for m in matches
        ]
        return ChatResult(answer, SOURCE_INTERNAL, docs)

    async def _fallback(self, message: str) -> ChatResult:
        topic = await self.classifier.classify(message)
        if not self.classifier.is_allowed(topic):
            logger.info("Fallback refused: question classified as %r", topic)
            return ChatResult(ESCALATION_MESSAGE, SOURCE_FALLBACK)
        answer = await self._complete(FALLBACK_SYSTEM.format(topic=topic), message)
        return ChatResult(answer, SOURCE_FALLBACK)

    async def answer(self, message: str, session_id: str) -> ChatResult:
        if not (message or "").strip() or not (session_id or "").strip():
            raise InvalidRequest("Message and sessionId are required")
        if await self.store.get_session(session_id) is None:
            raise NotFound("Chat session not found")

        vector = await self.embedder.embed(message)
        matches = await self._retrieve(vector)

        threshold = self.settings.SIMILARITY_THRESHOLD
        if matches and matches[0].similarity >= threshold:
            result = await self._grounded(message, [m for m in matches if m.similarity >= threshold])
        else:
            result = await self._fallback(message)

        try:
            await self.store.append_exchange(session_id, message, result.response)
        except Exception:
            # history write is best-effort
            logger.exception("Failed to save chat history for session %s", session_id)
        return result

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..config import Settings
from ..errors import EmbeddingFailure, EmptyDocument, InvalidRequest, NotFound, ProviderError
from ..utils.text import TextChunk, split_into_chunks

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    document_id: str
    chunks_processed: int


class DocumentIngestor:
    """Rebuilds the searchable chunk set of one document.

    store needs get_document() and replace_chunks(); embedder needs embed(text).
    """

    def __init__(self, store, embedder, settings: Settings):
        self.store = store
        self.embedder = embedder
        self.settings = settings

    async def _embed_one(self, chunk: TextChunk, sem: asyncio.Semaphore) -> Optional[Tuple[str, List[float]]]:
        async with sem:
            try:
                vector = await self.embedder.embed(chunk.content)
            except ProviderError as e:
                logger.warning("Skipping chunk [%d, %d): embedding failed: %s", chunk.start, chunk.end, e)
                return None
        return chunk.content, vector

    async def process(self, document_id) -> IngestResult:
        if not document_id or not str(document_id).strip():
            raise InvalidRequest("Document ID is required")

        document = await self.store.get_document(document_id)
        if document is None:
            raise NotFound("Document not found")

        chunks = split_into_chunks(
            document.content or "",
            chunk_size=self.settings.CHUNK_SIZE,
            overlap=self.settings.CHUNK_OVERLAP,
            min_length=self.settings.CHUNK_MIN_LENGTH,
        )
        if not chunks:
            raise EmptyDocument("No valid chunks created from document")

        sem = asyncio.Semaphore(max(1, self.settings.EMBED_CONCURRENCY))
        results = await asyncio.gather(*(self._embed_one(c, sem) for c in chunks))
        embedded = [r for r in results if r is not None]
        if not embedded:
            raise EmbeddingFailure("Failed to generate any embeddings")

        stored = await self.store.replace_chunks(document.id, embedded)
        logger.info("Document %s ingested: %d/%d chunks embedded", document.id, stored, len(chunks))
        return IngestResult(document_id=str(document.id), chunks_processed=stored)

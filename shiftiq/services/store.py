import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from sqlalchemy import select, delete, update, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..errors import PersistenceError
from ..models import Beer, ChatMessage, ChatSession, Document, DocumentChunk, SystemSetting, utcnow


@dataclass
class ChunkMatch:
    document_id: uuid.UUID
    title: str
    category: str
    content: str
    similarity: float


def _as_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _to_vec(raw) -> np.ndarray:
    if raw is None:
        raw = []
    return np.asarray([float(x) for x in raw], dtype=np.float32).reshape(-1)


def _like(q: str) -> str:
    return f"%{q.strip()}%"


class SqlStore:
    """Documents, chunk embeddings, chat history and reference tables over SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # Documents

    async def get_document(self, document_id) -> Optional[Document]:
        doc_id = _as_uuid(document_id)
        if doc_id is None:
            return None
        async with self.session_factory() as session:
            return await session.get(Document, doc_id)

    async def create_document(self, *, title: str, content: str, category: str = "general",
                              tags: Optional[List[str]] = None, file_type: str = "text",
                              created_by=None) -> Document:
        doc = Document(title=title, content=content, category=category, tags=list(tags or []),
                       file_type=file_type, created_by=_as_uuid(created_by) if created_by else None)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(doc)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create document: {e}") from e
        return doc

    async def list_documents(self, category: Optional[str] = None) -> List[Document]:
        stmt = select(Document)
        if category:
            stmt = stmt.where(Document.category == category)
        stmt = stmt.order_by(Document.created_at.desc())
        async with self.session_factory() as session:
            return list((await session.scalars(stmt)).all())

    async def search_documents(self, query: str) -> List[Document]:
        stmt = (select(Document)
                .where(or_(Document.title.ilike(_like(query)), Document.content.ilike(_like(query))))
                .order_by(Document.created_at.desc()))
        async with self.session_factory() as session:
            return list((await session.scalars(stmt)).all())

    async def delete_document(self, document_id) -> bool:
        """Delete a document together with every chunk that belongs to it."""
        doc_id = _as_uuid(document_id)
        if doc_id is None:
            return False
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    doc = await session.get(Document, doc_id)
                    if doc is None:
                        return False
                    await session.execute(delete(DocumentChunk).where(DocumentChunk.document_id == doc_id))
                    await session.delete(doc)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete document {doc_id}: {e}") from e
        return True

    # Chunks

    async def replace_chunks(self, document_id, chunks: Sequence[Tuple[str, List[float]]]) -> int:
        """Swap the document's chunk set for `chunks` in one transaction.

        Readers see either the old set or the new one, never a mix and never
        an empty window.
        """
        doc_id = _as_uuid(document_id)
        rows = [DocumentChunk(document_id=doc_id, content=text, embedding=list(vec)) for text, vec in chunks]
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(delete(DocumentChunk).where(DocumentChunk.document_id == doc_id))
                    session.add_all(rows)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to store embeddings for {doc_id}: {e}") from e
        return len(rows)

    async def count_chunks(self, document_id) -> int:
        doc_id = _as_uuid(document_id)
        async with self.session_factory() as session:
            stmt = select(func.count()).select_from(DocumentChunk).where(DocumentChunk.document_id == doc_id)
            return int(await session.scalar(stmt) or 0)

    async def search_chunks(self, query_embedding: Iterable[float], match_count: int = 3,
                            threshold: float = 0.7) -> List[ChunkMatch]:
        """Cosine-similarity search over all chunks; best `match_count` at or above `threshold`."""
        q = _to_vec(query_embedding)
        stmt = (select(DocumentChunk, Document.title, Document.category)
                .join(Document, Document.id == DocumentChunk.document_id))
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()

        q_norm = float(np.linalg.norm(q))
        scored: List[ChunkMatch] = []
        for chunk, title, category in rows:
            e = _to_vec(chunk.embedding)
            if e.size == 0 or e.size != q.size or q_norm == 0.0:
                continue
            score = float(np.dot(q, e) / (q_norm * np.linalg.norm(e) + 1e-8))
            if score >= threshold:
                scored.append(ChunkMatch(chunk.document_id, title, category, chunk.content, score))

        scored.sort(key=lambda m: m.similarity, reverse=True)
        return scored[:match_count]

    # Chat

    async def get_session(self, session_id) -> Optional[ChatSession]:
        sid = _as_uuid(session_id)
        if sid is None:
            return None
        async with self.session_factory() as session:
            return await session.get(ChatSession, sid)

    async def create_session(self, *, user_id: Optional[str] = None, title: str = "New chat") -> ChatSession:
        chat = ChatSession(user_id=user_id, title=title)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(chat)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create chat session: {e}") from e
        return chat

    async def list_sessions(self, user_id: Optional[str] = None) -> List[ChatSession]:
        stmt = select(ChatSession)
        if user_id:
            stmt = stmt.where(ChatSession.user_id == user_id)
        stmt = stmt.order_by(ChatSession.updated_at.desc())
        async with self.session_factory() as session:
            return list((await session.scalars(stmt)).all())

    async def list_messages(self, session_id) -> List[ChatMessage]:
        sid = _as_uuid(session_id)
        if sid is None:
            return []
        stmt = select(ChatMessage).where(ChatMessage.session_id == sid).order_by(ChatMessage.seq)
        async with self.session_factory() as session:
            return list((await session.scalars(stmt)).all())

    async def append_exchange(self, session_id, user_text: str, answer: str) -> None:
        """Append the user message and its answer as one write.

        The session row is updated first, which locks it until commit, so
        concurrent turns in one session are written one after the other.
        """
        sid = _as_uuid(session_id)
        if sid is None:
            raise PersistenceError(f"Chat session {session_id} does not exist")
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    now = utcnow()
                    touched = await session.execute(
                        update(ChatSession).where(ChatSession.id == sid).values(updated_at=now))
                    if touched.rowcount == 0:
                        raise PersistenceError(f"Chat session {session_id} does not exist")
                    session.add_all([
                        ChatMessage(session_id=sid, content=user_text, is_user=True, created_at=now),
                        ChatMessage(session_id=sid, content=answer, is_user=False, created_at=now),
                    ])
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to save chat history: {e}") from e

    # Beers

    async def list_beers(self, style: Optional[str] = None) -> List[Beer]:
        stmt = select(Beer)
        if style:
            stmt = stmt.where(Beer.style == style)
        async with self.session_factory() as session:
            return list((await session.scalars(stmt.order_by(Beer.name))).all())

    async def search_beers(self, query: str) -> List[Beer]:
        pattern = _like(query)
        stmt = (select(Beer)
                .where(or_(Beer.name.ilike(pattern), Beer.brewery.ilike(pattern), Beer.style.ilike(pattern)))
                .order_by(Beer.name))
        async with self.session_factory() as session:
            return list((await session.scalars(stmt)).all())

    async def create_beer(self, **fields) -> Beer:
        beer = Beer(**fields)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(beer)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create beer: {e}") from e
        return beer

    async def delete_beer(self, beer_id) -> bool:
        bid = _as_uuid(beer_id)
        if bid is None:
            return False
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    beer = await session.get(Beer, bid)
                    if beer is None:
                        return False
                    await session.delete(beer)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete beer {bid}: {e}") from e
        return True

    # System settings

    async def get_setting(self, key: str) -> Optional[SystemSetting]:
        async with self.session_factory() as session:
            return await session.get(SystemSetting, key)

    async def set_setting(self, key: str, value: str, description: Optional[str] = None) -> SystemSetting:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    row = await session.get(SystemSetting, key)
                    if row is None:
                        row = SystemSetting(key=key, value=value, description=description)
                        session.add(row)
                    else:
                        row.value = value
                        if description is not None:
                            row.description = description
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save setting {key}: {e}") from e
        return row

from typing import Optional

from fastapi import Depends, Header, HTTPException

from .config import Settings, settings as app_settings
from .db import get_session_local
from .services.chat import ChatPipeline
from .services.embedding import OpenAIEmbedder
from .services.ingest import DocumentIngestor
from .services.llm import build_chat_provider
from .services.store import SqlStore


def get_settings() -> Settings:
    return app_settings


def get_store() -> SqlStore:
    return SqlStore(get_session_local())


def get_embedder(settings: Settings = Depends(get_settings)):
    return OpenAIEmbedder(settings)


def get_chat_provider(settings: Settings = Depends(get_settings)):
    return build_chat_provider(settings)


def get_ingestor(
    store: SqlStore = Depends(get_store),
    embedder=Depends(get_embedder),
    settings: Settings = Depends(get_settings),
) -> DocumentIngestor:
    return DocumentIngestor(store, embedder, settings)


def get_pipeline(
    store: SqlStore = Depends(get_store),
    embedder=Depends(get_embedder),
    chat=Depends(get_chat_provider),
    settings: Settings = Depends(get_settings),
) -> ChatPipeline:
    return ChatPipeline(store, embedder, chat, settings)


def auth_dep(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Bearer check against API_KEY when AUTH_ENABLED; returns the token."""
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if settings.AUTH_ENABLED and token != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")
    return token

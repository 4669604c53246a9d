from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional
from uuid import UUID


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Requests for the two pipeline endpoints keep every field optional so that a
# missing value is reported as 400 by the handler rather than a schema error.

class ProcessDocumentRequest(CamelModel):
    document_id: Optional[str] = None


class ProcessDocumentResponse(CamelModel):
    success: bool = True
    chunks_processed: int
    document_id: str


class ChatRequest(CamelModel):
    message: Optional[str] = None
    session_id: Optional[str] = None


class SourceDocument(CamelModel):
    title: str
    content: str
    similarity: float
    category: str


class ChatResponse(CamelModel):
    response: str
    source: Literal["internal", "fallback", "error"]
    source_documents: List[SourceDocument] = Field(default_factory=list)


class DocumentCreate(CamelModel):
    title: str = Field(min_length=1)
    content: str
    category: str = "general"
    tags: List[str] = Field(default_factory=list)
    file_type: str = "text"
    created_by: Optional[UUID] = None


class DocumentOut(CamelModel):
    id: UUID
    title: str
    content: str
    category: str
    tags: List[str] = Field(default_factory=list)
    file_type: str
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class DocumentCreated(CamelModel):
    document: DocumentOut
    chunks_processed: Optional[int] = None
    error: Optional[str] = None


class SessionCreate(CamelModel):
    user_id: Optional[str] = None
    title: str = "New chat"


class SessionOut(CamelModel):
    id: UUID
    user_id: Optional[str] = None
    title: str
    created_at: datetime
    updated_at: datetime


class MessageOut(CamelModel):
    id: UUID
    session_id: UUID
    content: str
    is_user: bool
    created_at: datetime


class BeerCreate(CamelModel):
    name: str = Field(min_length=1)
    brewery: Optional[str] = None
    style: Optional[str] = None
    abv: Optional[float] = Field(default=None, ge=0)
    ibu: Optional[int] = Field(default=None, ge=0)
    taste_profile: Optional[str] = None
    similar_to: Optional[List[str]] = None
    description: Optional[str] = None
    is_active: bool = True


class BeerOut(BeerCreate):
    id: UUID


class SettingIn(CamelModel):
    value: str
    description: Optional[str] = None


class SettingOut(CamelModel):
    key: str
    value: str
    description: Optional[str] = None

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from ..deps import auth_dep, get_ingestor, get_store
from ..errors import InvalidRequest, NotFound, ShiftIQError
from ..models import Document
from ..schemas import (DocumentCreate, DocumentCreated, DocumentOut, ProcessDocumentRequest,
                       ProcessDocumentResponse)
from ..services.extract import extract_text
from ..services.ingest import DocumentIngestor
from ..services.store import SqlStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"], dependencies=[Depends(auth_dep)])


async def _ingest_created(doc: Document, ingestor: DocumentIngestor) -> DocumentCreated:
    """Ingest a just-stored document; an ingestion failure is reported next to the document."""
    out = DocumentOut.model_validate(doc)
    try:
        result = await ingestor.process(doc.id)
    except ShiftIQError as e:
        logger.warning("Document %s stored but not processed: %s", doc.id, e.message)
        return DocumentCreated(document=out, error=e.message)
    return DocumentCreated(document=out, chunks_processed=result.chunks_processed)


@router.post("/process-document", response_model=ProcessDocumentResponse)
async def process_document(req: ProcessDocumentRequest, ingestor: DocumentIngestor = Depends(get_ingestor)):
    if not req.document_id:
        raise InvalidRequest("Document ID is required")
    result = await ingestor.process(req.document_id)
    return ProcessDocumentResponse(chunks_processed=result.chunks_processed, document_id=result.document_id)


@router.post("/documents", response_model=DocumentCreated, status_code=201)
async def create_document(
    req: DocumentCreate,
    process: bool = False,
    store: SqlStore = Depends(get_store),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    doc = await store.create_document(**req.model_dump())
    if process:
        return await _ingest_created(doc, ingestor)
    return DocumentCreated(document=DocumentOut.model_validate(doc))


@router.post("/documents/upload", response_model=DocumentCreated, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    category: str = Form("general"),
    tags: str = Form(""),
    store: SqlStore = Depends(get_store),
    ingestor: DocumentIngestor = Depends(get_ingestor),
):
    content_bytes = await file.read()
    text, file_type = await run_in_threadpool(extract_text, file.filename, content_bytes)
    if not text or len(text.strip()) == 0:
        raise InvalidRequest("Empty text after extraction")

    doc = await store.create_document(
        title=title or file.filename or "Untitled",
        content=text,
        category=category,
        tags=[t.strip() for t in tags.split(",") if t.strip()],
        file_type=file_type,
    )
    return await _ingest_created(doc, ingestor)


@router.get("/documents", response_model=List[DocumentOut])
async def list_documents(category: Optional[str] = None, store: SqlStore = Depends(get_store)):
    return await store.list_documents(category)


@router.get("/documents/search", response_model=List[DocumentOut])
async def search_documents(q: str, store: SqlStore = Depends(get_store)):
    return await store.search_documents(q)


@router.get("/documents/{document_id}", response_model=DocumentOut)
async def get_document(document_id: str, store: SqlStore = Depends(get_store)):
    doc = await store.get_document(document_id)
    if doc is None:
        raise NotFound("Document not found")
    return doc


@router.delete("/documents/{document_id}", status_code=204)
async def delete_document(document_id: str, store: SqlStore = Depends(get_store)):
    if not await store.delete_document(document_id):
        raise NotFound("Document not found")
    logger.info("Document %s deleted with its chunks", document_id)

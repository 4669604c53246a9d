import logging
from typing import List, Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from ..deps import auth_dep, get_pipeline, get_store
from ..errors import InvalidRequest, NotFound
from ..schemas import ChatRequest, ChatResponse, MessageOut, SessionCreate, SessionOut
from ..services.chat import APOLOGY, SOURCE_ERROR, ChatPipeline
from ..services.store import SqlStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"], dependencies=[Depends(auth_dep)])


@router.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, pipeline: ChatPipeline = Depends(get_pipeline)):
    try:
        result = await pipeline.answer(req.message, req.session_id)
    except (InvalidRequest, NotFound) as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except Exception:
        logger.exception("Chat API error")
        payload = ChatResponse(response=APOLOGY, source=SOURCE_ERROR).model_dump(by_alias=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error", **payload})

    return ChatResponse(
        response=result.response,
        source=result.source,
        source_documents=result.source_documents,
    )


@router.post("/sessions", response_model=SessionOut, status_code=201)
async def create_session(req: SessionCreate, store: SqlStore = Depends(get_store)):
    return await store.create_session(user_id=req.user_id, title=req.title)


@router.get("/sessions", response_model=List[SessionOut])
async def list_sessions(user_id: Optional[str] = None, store: SqlStore = Depends(get_store)):
    return await store.list_sessions(user_id)


@router.get("/sessions/{session_id}/messages", response_model=List[MessageOut])
async def list_messages(session_id: str, store: SqlStore = Depends(get_store)):
    if await store.get_session(session_id) is None:
        raise NotFound("Chat session not found")
    return await store.list_messages(session_id)

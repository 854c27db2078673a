from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import logging
from pydantic import BaseModel, Field

from agent.agent import DialogueController, build_controller
from agent.core.schema import StructuredReply
from agent.errors import BadRequest, ChatServiceError, UpstreamFormatError, UpstreamTimeout, UpstreamUnavailable
from config.settings import get_settings


settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("chatmemory")

app = FastAPI(title="Structured Chat Memory Service", version="1.0.0")

# CORS: allow local frontend during development
if settings.is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class ChatRequest(BaseModel):
    message: Optional[str] = Field(None, description="User's message")


class MemoryChatRequest(BaseModel):
    username: Optional[str] = Field(None, description="Identifier the short-term memory is keyed by")
    message: Optional[str] = Field(None, description="User's latest message")


class ChatReply(BaseModel):
    reply: str


@lru_cache(maxsize=1)
def _controller() -> DialogueController:
    return build_controller(get_settings())


def get_controller() -> DialogueController:
    if not get_settings().google_api_key:
        raise HTTPException(
            status_code=500,
            detail="Missing GOOGLE_API_KEY in environment or .env",
        )
    return _controller()


def _to_http(exc: ChatServiceError) -> HTTPException:
    if isinstance(exc, BadRequest):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, UpstreamTimeout):
        return HTTPException(status_code=504, detail="AI service timed out")
    if isinstance(exc, UpstreamFormatError):
        return HTTPException(status_code=502, detail="Invalid AI response format")
    if isinstance(exc, UpstreamUnavailable):
        return HTTPException(status_code=502, detail="AI service unavailable")
    return HTTPException(status_code=500, detail="Internal Server Error")


@app.post("/chat", response_model=ChatReply)
async def chat(req: ChatRequest, controller: DialogueController = Depends(get_controller)) -> Dict[str, str]:
    try:
        text = await controller.reply(req.message)
    except BadRequest as exc:
        raise _to_http(exc)
    except ChatServiceError as exc:
        logger.exception("Error processing request: %s", exc)
        raise _to_http(exc)
    return {"reply": text}


@app.post("/chat/structured", response_model=StructuredReply)
async def chat_structured(
    req: ChatRequest, controller: DialogueController = Depends(get_controller)
) -> StructuredReply:
    try:
        return await controller.structured_reply(req.message)
    except BadRequest as exc:
        raise _to_http(exc)
    except ChatServiceError as exc:
        logger.exception("Structured AI Error: %s", exc)
        raise _to_http(exc)


@app.post("/chat/memory", response_model=StructuredReply)
async def chat_memory(
    req: MemoryChatRequest, controller: DialogueController = Depends(get_controller)
) -> StructuredReply:
    logger.info("Incoming chat: username=%s message_len=%s", req.username, len(req.message or ""))
    try:
        return await controller.handle_turn(req.username, req.message)
    except BadRequest as exc:
        raise _to_http(exc)
    except ChatServiceError as exc:
        logger.exception("Memory AI Error: %s", exc)
        raise _to_http(exc)


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)

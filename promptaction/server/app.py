"""FastAPI app creation and routes.

The executor (and through it the tool executor and LLM client) is injected
into ``create_app``; this module owns no global state.
"""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from ..orchestrator import CommandExecutor
from .models import CommandRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _missing_command() -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": "Missing command", "response": "Please provide a command."},
        status_code=400,
    )


def _executor(request: Request) -> CommandExecutor:
    return request.app.state.executor


@router.post("/ai")
async def run_command(req: CommandRequest, request: Request):
    if not req.command or not req.command.strip():
        return _missing_command()
    logger.info(f"[API] /ai workspace={req.workspace_id} history={len(req.conversation_history)}")
    result = await _executor(request).execute(req.command, req.to_context(), req.history())
    return JSONResponse(json.loads(json.dumps(result.to_dict(), default=str)))


@router.post("/ai/stream")
async def stream_command(req: CommandRequest, request: Request):
    if not req.command or not req.command.strip():
        return _missing_command()
    logger.info(f"[API] /ai/stream workspace={req.workspace_id}")
    executor = _executor(request)

    async def event_generator():
        async for event in executor.stream(req.command, req.to_context(), req.history()):
            data = json.dumps(event.to_dict(), ensure_ascii=False, default=str)
            yield f"data: {data}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
    )


@router.get("/health")
async def health(request: Request):
    cache = _executor(request).schema_cache
    return {
        "status": "ok",
        "schema_cache": {"entries": len(cache), "hits": cache.hits, "misses": cache.misses},
    }


def create_app(executor: CommandExecutor) -> FastAPI:
    """Build the API around an already-configured executor."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await executor.close()

    api = FastAPI(title="promptaction", version="0.1.0", lifespan=lifespan)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    api.state.executor = executor
    api.include_router(router)
    return api

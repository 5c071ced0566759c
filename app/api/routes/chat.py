import logging
from functools import lru_cache
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config import SAFE_FALLBACKS
from models.schemas import BotRequest, ErrorResponse
from api.utils.llm import (
    LLMConfigurationError,
    OpenAICompletion,
    OpenAIEmbedding,
    build_openai_client,
    build_openrouter_completion,
)
from api.utils.pipeline import ChatPipeline, InvalidRequestError, new_query_id
from api.utils.routing import default_backends
from api.utils.store import ChatStore

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache(maxsize=1)
def get_llm_services() -> Tuple[OpenAICompletion, OpenAIEmbedding, Optional[OpenAICompletion]]:
    """
    Process-wide LLM clients, built on first use and shared by every request.
    A missing key raises LLMConfigurationError and nothing is cached.
    """
    client = build_openai_client()
    return OpenAICompletion(client), OpenAIEmbedding(client), build_openrouter_completion()


async def close_llm_services() -> None:
    if get_llm_services.cache_info().currsize == 0:
        return
    completion, _embedder, openrouter = get_llm_services()
    await completion.aclose()
    if openrouter is not None:
        await openrouter.aclose()
    get_llm_services.cache_clear()


def get_pipeline() -> Optional[ChatPipeline]:
    """Pipeline over the shared clients; None when no OpenAI key is set."""
    try:
        completion, embedder, openrouter = get_llm_services()
    except LLMConfigurationError as e:
        logger.error("Chat pipeline not configured: %s", e)
        return None
    return ChatPipeline(
        completion=completion,
        embedder=embedder,
        store=ChatStore(),
        router_backends=default_backends(completion, openrouter),
    )


def _server_error(message: str) -> JSONResponse:
    body = ErrorResponse(
        error=message,
        text=SAFE_FALLBACKS["english"],
        mediaUrls=[],
        faqId=None,
        queryId=new_query_id(),
        pipelineLogs=[],
    )
    return JSONResponse(status_code=500, content=body.model_dump())


@router.post("")
async def chat(request: Request, pipeline: Optional[ChatPipeline] = Depends(get_pipeline)):
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})

    try:
        bot_request = BotRequest(**payload)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {e.errors()[0].get('msg')}"})

    if not bot_request.message or not bot_request.userName:
        return JSONResponse(status_code=400, content={"error": "Missing message or userName"})

    if pipeline is None:
        return _server_error("LLM service is not configured")

    try:
        result = await pipeline.run(bot_request)
    except InvalidRequestError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.exception("Chat pipeline failed")
        return _server_error(f"Internal error: {e}")

    body = result.model_dump()
    if body.get("suggestions") is None:
        body.pop("suggestions", None)
    return body

"""Chat relay backend using FastAPI + Mangum for AWS Lambda."""

import logging
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from mangum import Mangum

from chat_relay.constants import DEFAULT_PROVIDER
from chat_relay.errors import (
    ChatValidationError,
    ErrorKind,
    ProviderError,
    ProviderNotFoundError,
    format_error_for_user,
)
from chat_relay.infra.runtime import (
    ensure_langsmith_configured,
    flush_langsmith_traces,
    get_relay_settings,
)
from chat_relay.orchestration.base import ChatOrchestrator
from chat_relay.orchestration.direct import DirectChatOrchestrator
from chat_relay.orchestration.langgraph_flow import LangGraphChatOrchestrator
from chat_relay.providers.base import ChatProvider
from chat_relay.providers.factory import build_providers, default_models
from chat_relay.schemas import ChatInput, ConnectionTestRequest
from chat_relay.services.chat_service import ChatService
from chat_relay.services.provider_service import ProviderService
from chat_relay.streaming.relay import StreamRelay
from chat_relay.streaming.sse import utc_timestamp

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

app = FastAPI()
router = APIRouter(prefix="/api")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "X-Accel-Buffering": "no",
}

STATUS_BY_ERROR_KIND = {
    ErrorKind.AUTHENTICATION_FAILED: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.UNREACHABLE: 503,
    ErrorKind.UPSTREAM_ERROR: 502,
}


@lru_cache(maxsize=1)
def get_providers() -> dict[str, ChatProvider]:
    return dict(build_providers(get_relay_settings()))


@lru_cache(maxsize=1)
def get_stream_relay() -> StreamRelay:
    return StreamRelay(
        get_providers(),
        token_delay_seconds=get_relay_settings().simulated_token_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    providers = get_providers()
    orchestrator: ChatOrchestrator
    if get_relay_settings().orchestrator == "langgraph":
        orchestrator = LangGraphChatOrchestrator(providers=providers)
    else:
        orchestrator = DirectChatOrchestrator(providers=providers)
    return ChatService(default_models=default_models(providers), orchestrator=orchestrator)


@lru_cache(maxsize=1)
def get_provider_service() -> ProviderService:
    return ProviderService(get_providers())


def _stream(chat_input: ChatInput, request: Request) -> StreamingResponse:
    return StreamingResponse(
        get_stream_relay().relay(chat_input, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


def _not_found(error: ProviderNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"success": False, "error": "Provider not found", "message": str(error)},
    )


@router.get("/chat/stream")
async def chat_stream(
    request: Request,
    message: str | None = None,
    provider: str = DEFAULT_PROVIDER,
    model: str | None = None,
    config: str | None = None,
) -> StreamingResponse:
    """Relay a chat reply as server-sent events; errors arrive in-band."""
    return _stream(
        ChatInput(message=message, provider=provider, model=model, config=config), request
    )


@router.post("/chat/stream")
async def chat_stream_post(request: Request, chat_input: ChatInput) -> StreamingResponse:
    return _stream(chat_input, request)


@router.post("/chat/send")
async def chat_send(chat_input: ChatInput) -> Any:
    """Single-shot chat reply."""
    ensure_langsmith_configured()
    try:
        response = await get_chat_service().handle_send(chat_input)
        return response.model_dump(by_alias=True)
    except ChatValidationError as e:
        return JSONResponse(status_code=400, content=e.to_payload())
    except ProviderError as e:
        logger.warning(
            "Provider call failed",
            extra={"provider": e.provider, "error_kind": e.kind.value, "status_code": e.status_code},
        )
        return JSONResponse(
            status_code=STATUS_BY_ERROR_KIND[e.kind],
            content={
                "success": False,
                "error": format_error_for_user(e),
                "message": e.message,
                "provider": e.provider,
                "model": chat_input.model,
                "timestamp": utc_timestamp(),
            },
        )
    except Exception as e:
        logger.exception("Chat send failed")
        raise HTTPException(status_code=502, detail=str(e)) from e
    finally:
        flush_langsmith_traces()


@router.get("/providers")
async def list_providers() -> dict[str, Any]:
    providers = await get_provider_service().list_providers()
    return {
        "success": True,
        "providers": [provider.model_dump(by_alias=True) for provider in providers],
        "total": len(providers),
    }


@router.get("/providers/{provider_id}")
async def get_provider(provider_id: str) -> Any:
    try:
        detail = await get_provider_service().get_provider(provider_id)
    except ProviderNotFoundError as e:
        return _not_found(e)
    return {"success": True, "provider": detail.model_dump(by_alias=True)}


@router.get("/providers/{provider_id}/models")
async def list_provider_models(provider_id: str) -> Any:
    try:
        models = await get_provider_service().list_models(provider_id)
    except ProviderNotFoundError as e:
        return _not_found(e)
    return {
        "success": True,
        "models": [model.model_dump(by_alias=True) for model in models],
        "count": len(models),
    }


@router.post("/providers/test")
async def test_provider_connection(body: ConnectionTestRequest) -> Any:
    service = get_provider_service()
    try:
        if not body.provider or (not body.api_key and service.requires_api_key(body.provider)):
            return JSONResponse(
                status_code=400,
                content={
                    "success": False,
                    "error": "Missing parameters",
                    "message": "Provider and API key are required",
                },
            )
        result = await service.test_connection(body.provider, body.api_key, body.model)
    except ProviderNotFoundError as e:
        return _not_found(e)

    if not result.success:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": result.error,
                "responseTime": result.response_time_ms,
            },
        )
    return {
        "success": True,
        "message": f"Successfully connected to {service.display_name(body.provider)}",
        "responseTime": result.response_time_ms,
    }


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(router)


handler = Mangum(app)

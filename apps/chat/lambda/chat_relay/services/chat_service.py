"""Application service for single-shot chat requests."""

import logging
import time
import uuid
from collections.abc import Mapping

from chat_relay.orchestration.base import ChatOrchestrator
from chat_relay.schemas import ChatInput, SendMessageResponse
from chat_relay.streaming.sse import utc_timestamp
from chat_relay.validation import validate_chat_input

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, default_models: Mapping[str, str], orchestrator: ChatOrchestrator) -> None:
        self._default_models = default_models
        self._orchestrator = orchestrator

    async def handle_send(self, chat_input: ChatInput) -> SendMessageResponse:
        request = validate_chat_input(
            chat_input.message,
            chat_input.provider,
            chat_input.model,
            chat_input.config,
            self._default_models,
        )
        conversation_id = str(uuid.uuid4())
        logger.info(
            "Chat request received",
            extra={
                "conversation_id": conversation_id,
                "provider": request.provider_id,
                "model": request.model_id,
                "message_length": len(request.message),
            },
        )

        start = time.time()
        response = await self._orchestrator.run(request)
        return SendMessageResponse(
            response=response.content,
            provider=response.provider,
            model=response.model,
            conversation_id=conversation_id,
            usage=response.usage,
            finish_reason=response.finish_reason,
            response_time=int((time.time() - start) * 1000),
            timestamp=utc_timestamp(),
        )

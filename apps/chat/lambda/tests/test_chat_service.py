import unittest
from unittest.mock import AsyncMock, Mock

from chat_relay.errors import ChatValidationError
from chat_relay.providers.base import ProviderResponse
from chat_relay.schemas import ChatInput
from chat_relay.services.chat_service import ChatService

DEFAULT_MODELS = {"openai": "gpt-4o", "groq": "llama3-70b-8192"}


class ChatServiceTests(unittest.IsolatedAsyncioTestCase):
    def _service(self, orchestrator: Mock) -> ChatService:
        return ChatService(default_models=DEFAULT_MODELS, orchestrator=orchestrator)

    async def test_handle_send_delegates_to_orchestrator_and_maps_response(self) -> None:
        orchestrator = Mock()
        orchestrator.run = AsyncMock(
            return_value=ProviderResponse(
                content="assistant reply",
                usage={"prompt_tokens": 11, "completion_tokens": 22, "total_tokens": 33},
                finish_reason="stop",
                provider="openai",
                model="gpt-4o",
            )
        )

        response = await self._service(orchestrator).handle_send(
            ChatInput(message="  hello ", config={"temperature": 0.1})
        )

        self.assertTrue(response.success)
        self.assertEqual(response.response, "assistant reply")
        self.assertEqual(response.provider, "openai")
        self.assertEqual(response.model, "gpt-4o")
        self.assertEqual(response.usage["total_tokens"], 33)
        self.assertEqual(response.finish_reason, "stop")
        self.assertGreaterEqual(response.response_time, 0)
        self.assertTrue(response.conversation_id)

        orchestrator.run.assert_awaited_once()
        (called_request,) = orchestrator.run.await_args.args
        self.assertEqual(called_request.message, "hello")
        self.assertEqual(called_request.provider_id, "openai")
        self.assertEqual(called_request.model_id, "gpt-4o")
        self.assertEqual(called_request.config.temperature, 0.1)

    async def test_invalid_input_never_reaches_orchestrator(self) -> None:
        orchestrator = Mock()
        orchestrator.run = AsyncMock()

        with self.assertRaises(ChatValidationError) as ctx:
            await self._service(orchestrator).handle_send(ChatInput(message="hi", provider="bogus"))

        self.assertEqual(ctx.exception.available_providers, ["openai", "groq"])
        orchestrator.run.assert_not_awaited()

    async def test_response_serializes_with_client_field_names(self) -> None:
        orchestrator = Mock()
        orchestrator.run = AsyncMock(
            return_value=ProviderResponse(
                content="x", usage=None, finish_reason=None, provider="groq", model="m"
            )
        )

        response = await self._service(orchestrator).handle_send(
            ChatInput(message="hi", provider="groq")
        )
        payload = response.model_dump(by_alias=True)

        self.assertEqual(
            set(payload),
            {
                "success",
                "response",
                "provider",
                "model",
                "conversationId",
                "usage",
                "finishReason",
                "responseTime",
                "timestamp",
            },
        )


if __name__ == "__main__":
    unittest.main()

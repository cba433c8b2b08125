"""LangGraph-based orchestration strategy for single-shot chat execution."""

from collections.abc import Mapping
from typing import NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from chat_relay.providers.base import ChatProvider, ProviderResponse
from chat_relay.schemas import ChatRequest

from .base import ChatOrchestrator, invoke_provider, resolve_provider


class ChatGraphState(TypedDict):
    request: ChatRequest
    response: NotRequired[ProviderResponse]


class LangGraphChatOrchestrator(ChatOrchestrator):
    def __init__(self, providers: Mapping[str, ChatProvider]) -> None:
        self._providers = providers
        graph = StateGraph(ChatGraphState)
        graph.add_node("invoke_provider", self._invoke_provider)
        graph.add_edge(START, "invoke_provider")
        graph.add_edge("invoke_provider", END)
        self._graph = graph.compile()

    async def _invoke_provider(self, state: ChatGraphState) -> dict[str, ProviderResponse]:
        request = state["request"]
        provider = resolve_provider(self._providers, request.provider_id)
        return {"response": await invoke_provider(provider, request)}

    async def run(self, request: ChatRequest) -> ProviderResponse:
        initial_state: ChatGraphState = {"request": request}
        result = cast("ChatGraphState", await self._graph.ainvoke(initial_state))
        response = result.get("response")
        if response is None:
            raise RuntimeError("LangGraph execution did not return a provider response")
        return response

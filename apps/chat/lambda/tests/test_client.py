import asyncio
import unittest

import httpx

from chat_relay.client.stream_client import TIMEOUT_MESSAGE, RelayStreamClient
from chat_relay.client.view import BubbleKind, ConversationView
from chat_relay.constants import STREAM_STOPPED_NOTE


def _body(*frames: str) -> bytes:
    return "".join(f"data: {frame}\n\n" for frame in frames).encode("utf-8")


async def _wait_for(condition) -> None:
    for _ in range(200):
        if condition():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not met")


class ConversationViewTests(unittest.TestCase):
    def test_turn_lifecycle(self) -> None:
        view = ConversationView()

        turn = view.begin_turn("hi")
        self.assertTrue(view.is_typing)
        view.append_chunk(turn, "Hel")
        view.append_chunk(turn, "lo")
        view.finish(turn)

        user, assistant = view.bubbles
        self.assertEqual((user.kind, user.content), (BubbleKind.USER, "hi"))
        self.assertEqual((assistant.kind, assistant.content), (BubbleKind.ASSISTANT, "Hello"))
        self.assertFalse(assistant.typing)
        self.assertIsNotNone(assistant.completed_at)
        self.assertIsNone(view.active_turn)

    def test_late_events_from_abandoned_turn_are_ignored(self) -> None:
        view = ConversationView()
        first = view.begin_turn("one")
        view.append_chunk(first, "partial")
        second = view.begin_turn("two")

        self.assertFalse(view.append_chunk(first, " late"))
        self.assertFalse(view.finish(first))
        self.assertFalse(view.fail(first, "boom"))
        view.append_chunk(second, "current")

        self.assertEqual(view.bubbles[1].content, "partial" + STREAM_STOPPED_NOTE)
        self.assertEqual(view.bubbles[3].content, "current")
        self.assertEqual(view.active_turn, second)

    def test_error_before_content_replaces_typing_bubble(self) -> None:
        view = ConversationView()
        turn = view.begin_turn("hi")

        view.fail(turn, "Rate limit exceeded.")

        self.assertEqual([bubble.kind for bubble in view.bubbles], [BubbleKind.USER, BubbleKind.ERROR])
        self.assertTrue(view.bubbles[1].retryable)
        self.assertFalse(view.is_typing)

    def test_error_after_content_keeps_partial_reply(self) -> None:
        view = ConversationView()
        turn = view.begin_turn("hi")
        view.append_chunk(turn, "par")

        view.fail(turn, "Network error.")

        self.assertEqual(
            [bubble.kind for bubble in view.bubbles],
            [BubbleKind.USER, BubbleKind.ASSISTANT, BubbleKind.ERROR],
        )
        self.assertEqual(view.bubbles[1].content, "par")
        self.assertFalse(view.bubbles[1].typing)


class RelayStreamClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler, **kwargs) -> RelayStreamClient:
        return RelayStreamClient(
            "http://relay.test",
            ConversationView(),
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    async def test_chunks_are_appended_until_done(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                content=_body(
                    '{"content":"Hel","provider":"groq"}',
                    '{"content":"lo","provider":"groq"}',
                    '{"done":true}',
                    '{"content":"ignored"}',
                ),
            )

        client = self._client(handler)
        task = await client.send("hi", "groq", "llama3-8b-8192", {"temperature": 0.5})
        await task

        self.assertEqual(client.view.bubbles[1].content, "Hello")
        self.assertFalse(client.view.is_typing)
        params = requests[0].url.params
        self.assertEqual(requests[0].url.path, "/api/chat/stream")
        self.assertEqual(params["provider"], "groq")
        self.assertEqual(params["model"], "llama3-8b-8192")
        self.assertEqual(params["config"], '{"temperature": 0.5}')

    async def test_error_event_renders_error_bubble(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=_body(
                    '{"error":"Groq API key is invalid or expired",'
                    '"message":"Authentication failed. Please check your API key in settings."}'
                ),
            )

        client = self._client(handler)
        await (await client.send("hi", "groq"))

        error = client.view.bubbles[-1]
        self.assertEqual(error.kind, BubbleKind.ERROR)
        self.assertEqual(
            error.content, "Authentication failed. Please check your API key in settings."
        )
        self.assertFalse(client.view.is_typing)

    async def test_http_failure_status(self) -> None:
        client = self._client(lambda request: httpx.Response(500))

        await (await client.send("hi", "groq"))

        self.assertEqual(
            client.view.bubbles[-1].content,
            "Connection error: HTTP error! status: 500. Please try again.",
        )

    async def test_first_event_timeout(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, content=_body('{"done":true}'))

        client = self._client(handler, first_event_timeout=0.05)
        await (await client.send("hi", "groq"))

        self.assertEqual(client.view.bubbles[-1].kind, BubbleKind.ERROR)
        self.assertEqual(client.view.bubbles[-1].content, TIMEOUT_MESSAGE)

    async def test_new_message_cancels_open_stream(self) -> None:
        release = asyncio.Event()

        async def slow_body():
            yield b'data: {"content":"first"}\n\n'
            await release.wait()
            yield b'data: {"content":" late"}\n\n'

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["message"] == "one":
                return httpx.Response(200, content=slow_body())
            return httpx.Response(200, content=_body('{"content":"second"}', '{"done":true}'))

        client = self._client(handler)
        first = await client.send("one", "groq")
        await _wait_for(lambda: client.view.bubbles[1].content == "first")

        second = await client.send("two", "groq")
        release.set()
        await second

        self.assertTrue(first.cancelled())
        self.assertEqual(client.view.bubbles[1].content, "first" + STREAM_STOPPED_NOTE)
        self.assertEqual(client.view.bubbles[3].content, "second")

    async def test_stop_keeps_partial_reply(self) -> None:
        async def endless_body():
            yield b'data: {"content":"partial"}\n\n'
            await asyncio.Event().wait()

        client = self._client(lambda request: httpx.Response(200, content=endless_body()))
        task = await client.send("hi", "groq")
        await _wait_for(lambda: client.view.bubbles[1].content == "partial")

        await client.stop()

        self.assertTrue(task.cancelled())
        self.assertEqual(client.view.bubbles[1].content, "partial" + STREAM_STOPPED_NOTE)
        self.assertFalse(client.view.is_typing)


if __name__ == "__main__":
    unittest.main()

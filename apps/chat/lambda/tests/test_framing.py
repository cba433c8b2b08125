import unittest

from chat_relay.constants import ANTHROPIC_STOP_LINE
from chat_relay.framing import FrameParser, iter_payloads

BODY = (
    'data: {"choices":[{"delta":{"content":"Hel"}}]}\n'
    "\n"
    'data: {"choices":[{"delta":{"content":"lo ✓"}}]}\r\n'
    ": keep-alive\n"
    'data: {"choices":[{"delta":{"content":"!"}}]}\n'
    "data: [DONE]\n"
).encode("utf-8")


def _contents(payloads: list[dict]) -> list[str]:
    return [payload["choices"][0]["delta"]["content"] for payload in payloads]


def _feed_all(parser: FrameParser, chunks: list[bytes]) -> list[dict]:
    payloads: list[dict] = []
    for chunk in chunks:
        payloads.extend(parser.feed(chunk))
    payloads.extend(parser.close())
    return payloads


async def _chunks(parts: list[bytes], consumed: list[bytes]):
    for part in parts:
        consumed.append(part)
        yield part


class FrameParserTests(unittest.TestCase):
    def test_whole_body_yields_every_data_line(self) -> None:
        parser = FrameParser()

        payloads = _feed_all(parser, [BODY])

        self.assertEqual(_contents(payloads), ["Hel", "lo ✓", "!"])
        self.assertTrue(parser.finished)
        self.assertEqual(parser.discarded, 0)

    def test_every_split_point_yields_identical_payloads(self) -> None:
        expected = _feed_all(FrameParser(), [BODY])

        for index in range(len(BODY) + 1):
            with self.subTest(split=index):
                self.assertEqual(
                    _feed_all(FrameParser(), [BODY[:index], BODY[index:]]), expected
                )

    def test_byte_at_a_time_yields_identical_payloads(self) -> None:
        expected = _feed_all(FrameParser(), [BODY])
        chunks = [BODY[i : i + 1] for i in range(len(BODY))]

        self.assertEqual(_feed_all(FrameParser(), chunks), expected)

    def test_sentinel_short_circuits_rest_of_chunk(self) -> None:
        parser = FrameParser()

        payloads = parser.feed(b'data: {"a":1}\ndata: [DONE]\ndata: {"b":2}\n')

        self.assertEqual(payloads, [{"a": 1}])
        self.assertTrue(parser.finished)
        self.assertEqual(parser.feed(b'data: {"c":3}\n'), [])
        self.assertEqual(parser.close(), [])
        self.assertEqual(parser.buffered, "")

    def test_malformed_json_is_discarded_and_counted(self) -> None:
        parser = FrameParser()

        payloads = parser.feed(b'data: {not valid json\ndata: [1, 2]\ndata: {"ok":true}\n')

        self.assertEqual(payloads, [{"ok": True}])
        self.assertEqual(parser.discarded, 2)
        self.assertFalse(parser.finished)

    def test_unterminated_tail_is_flushed_on_close(self) -> None:
        parser = FrameParser(terminal_lines=())

        self.assertEqual(parser.feed(b'data: {"a":1}'), [])
        self.assertEqual(parser.buffered, 'data: {"a":1}')
        self.assertEqual(parser.close(), [{"a": 1}])
        self.assertTrue(parser.finished)

    def test_custom_terminal_line(self) -> None:
        parser = FrameParser(terminal_lines=(ANTHROPIC_STOP_LINE,))

        payloads = parser.feed(
            b'event: content_block_delta\ndata: {"type":"content_block_delta"}\n\n'
            b'event: message_stop\ndata: {"type":"message_stop"}\n\n'
        )

        self.assertEqual(payloads, [{"type": "content_block_delta"}])
        self.assertTrue(parser.finished)

    def test_done_line_is_plain_data_without_terminal_lines(self) -> None:
        parser = FrameParser(terminal_lines=())

        self.assertEqual(parser.feed(b"data: [DONE]\n"), [])
        self.assertEqual(parser.discarded, 1)
        self.assertFalse(parser.finished)


class IterPayloadsTests(unittest.IsolatedAsyncioTestCase):
    async def test_stops_reading_after_terminal_line(self) -> None:
        consumed: list[bytes] = []
        parts = [b'data: {"a":1}\n', b"data: [DONE]\n", b'data: {"b":2}\n']

        payloads = [
            payload async for payload in iter_payloads(_chunks(parts, consumed), FrameParser())
        ]

        self.assertEqual(payloads, [{"a": 1}])
        self.assertEqual(consumed, parts[:2])

    async def test_body_end_completes_stream(self) -> None:
        parser = FrameParser(terminal_lines=())
        parts = [b'data: {"a":', b'1}\r\n\r\ndata: {"b":2}']

        payloads = [payload async for payload in iter_payloads(_chunks(parts, []), parser)]

        self.assertEqual(payloads, [{"a": 1}, {"b": 2}])
        self.assertTrue(parser.finished)


if __name__ == "__main__":
    unittest.main()

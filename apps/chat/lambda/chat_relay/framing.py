"""Incremental framing of line-oriented ``data: <json>`` event streams.

Upstream bodies arrive in arbitrarily sized byte chunks that may cut a line
(or a multi-byte character) anywhere. ``FrameParser`` rebuilds the exact line
sequence and turns every ``data:`` line into a decoded JSON payload, so the
payloads produced for a body never depend on how the body was chunked.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterator, Iterable
from typing import Any

from .constants import DATA_PREFIX, DONE_SENTINEL

logger = logging.getLogger(__name__)


class FrameParser:
    """Stateful line framer for one stream.

    ``terminal_lines`` are literal lines that end the stream; when one is
    seen, every later line (including the rest of the current chunk) is
    ignored. Lines that carry malformed JSON are dropped and counted in
    ``discarded``.
    """

    def __init__(
        self,
        terminal_lines: Iterable[str] = (DONE_SENTINEL,),
        *,
        source: str = "",
    ) -> None:
        self._terminal_lines = frozenset(terminal_lines)
        self._source = source
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.finished = False
        self.discarded = 0

    @property
    def buffered(self) -> str:
        return self._buffer

    def feed(self, raw: bytes | str) -> list[dict[str, Any]]:
        if self.finished:
            return []
        text = self._decoder.decode(raw) if isinstance(raw, bytes) else raw
        *lines, self._buffer = (self._buffer + text).split("\n")
        return self._process(lines)

    def close(self) -> list[dict[str, Any]]:
        """Flush the unterminated tail at end of body and finish the stream."""
        if self.finished:
            return []
        tail = self._buffer + self._decoder.decode(b"", final=True)
        payloads = self._process([tail]) if tail.strip() else []
        self.finished = True
        self.reset()
        return payloads

    def reset(self) -> None:
        self._buffer = ""
        self._decoder.reset()

    def _process(self, lines: list[str]) -> list[dict[str, Any]]:
        payloads: list[dict[str, Any]] = []
        for line in lines:
            line = line.removesuffix("\r")
            if line in self._terminal_lines:
                self.finished = True
                self.reset()
                break
            if not line.startswith(DATA_PREFIX):
                continue
            payload = self._decode(line[len(DATA_PREFIX) :])
            if payload is not None:
                payloads.append(payload)
        return payloads

    def _decode(self, data: str) -> dict[str, Any] | None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            self.discarded += 1
            logger.debug(
                "Discarded malformed stream line",
                extra={"source": self._source, "line_length": len(data)},
            )
            return None
        return payload


async def iter_payloads(
    chunks: AsyncIterator[bytes], parser: FrameParser
) -> AsyncIterator[dict[str, Any]]:
    """Yield payloads until a terminal line or the end of ``chunks``.

    Returning from this generator is the single completion signal of a stream.
    """
    async for raw in chunks:
        for payload in parser.feed(raw):
            yield payload
        if parser.finished:
            return
    for payload in parser.close():
        yield payload

"""In-memory conversation model driven by relay stream events."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from chat_relay.constants import STREAM_STOPPED_NOTE


class BubbleKind(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    ERROR = "error"


@dataclass
class Bubble:
    kind: BubbleKind
    turn: int
    content: str = ""
    typing: bool = False
    retryable: bool = False
    completed_at: datetime | None = None


@dataclass
class ConversationView:
    """Ordered message bubbles with at most one assistant turn in flight.

    Every stream event names the turn it belongs to. Events for any turn
    other than the active one are rejected, so a stream abandoned for a
    newer message can never touch the current bubble.
    """

    bubbles: list[Bubble] = field(default_factory=list)
    _turn: int = field(default=0, init=False, repr=False)
    _active: Bubble | None = field(default=None, init=False, repr=False)

    @property
    def active_turn(self) -> int | None:
        return self._turn if self._active is not None else None

    @property
    def is_typing(self) -> bool:
        return self._active is not None and self._active.typing

    def begin_turn(self, message: str) -> int:
        if self._active is not None:
            self.stop(self._turn)
        self._turn += 1
        self.bubbles.append(
            Bubble(
                kind=BubbleKind.USER,
                turn=self._turn,
                content=message,
                completed_at=datetime.now(timezone.utc),
            )
        )
        self._active = Bubble(kind=BubbleKind.ASSISTANT, turn=self._turn, typing=True)
        self.bubbles.append(self._active)
        return self._turn

    def _current(self, turn: int) -> Bubble | None:
        if turn != self._turn:
            return None
        return self._active

    def append_chunk(self, turn: int, content: str) -> bool:
        bubble = self._current(turn)
        if bubble is None or not content:
            return False
        bubble.content += content
        return True

    def finish(self, turn: int) -> bool:
        bubble = self._current(turn)
        if bubble is None:
            return False
        bubble.typing = False
        bubble.completed_at = datetime.now(timezone.utc)
        self._active = None
        return True

    def stop(self, turn: int) -> bool:
        bubble = self._current(turn)
        if bubble is None:
            return False
        if not bubble.content.endswith(STREAM_STOPPED_NOTE):
            bubble.content += STREAM_STOPPED_NOTE
        return self.finish(turn)

    def fail(self, turn: int, message: str) -> bool:
        bubble = self._current(turn)
        if bubble is None:
            return False
        bubble.typing = False
        if not bubble.content:
            self.bubbles.remove(bubble)
        else:
            bubble.completed_at = datetime.now(timezone.utc)
        self.bubbles.append(
            Bubble(
                kind=BubbleKind.ERROR,
                turn=turn,
                content=message,
                retryable=True,
                completed_at=datetime.now(timezone.utc),
            )
        )
        self._active = None
        return True

"""
Stream events between the model client and the display.

StreamHandler pushes events onto an asyncio queue; StreamBuffer accumulates
chunk text for the attempt in progress and is reset when a retry starts.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class StreamEventType(Enum):
    CHUNK = "chunk"
    RETRY = "retry"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class StreamMetadata:
    timestamp: float
    chunk_index: int
    is_final: bool = False


@dataclass
class StreamEvent:
    event_type: StreamEventType
    content: str = ""
    metadata: Optional[StreamMetadata] = None

    @classmethod
    def chunk(cls, content: str) -> "StreamEvent":
        return cls(StreamEventType.CHUNK, content)

    @classmethod
    def retry(cls) -> "StreamEvent":
        return cls(StreamEventType.RETRY)

    @classmethod
    def complete(cls, content: str) -> "StreamEvent":
        return cls(StreamEventType.COMPLETE, content)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(StreamEventType.ERROR, message)


class StreamHandler:
    """Producer side of an unbounded event queue."""

    def __init__(self, queue: Optional["asyncio.Queue[StreamEvent]"] = None):
        self.queue: "asyncio.Queue[StreamEvent]" = queue if queue is not None else asyncio.Queue()

    @classmethod
    def create(cls) -> Tuple["StreamHandler", "asyncio.Queue[StreamEvent]"]:
        handler = cls()
        return handler, handler.queue

    def send_event(self, event: StreamEvent) -> None:
        self.queue.put_nowait(event)

    def send_chunk(self, content: str) -> None:
        self.send_event(StreamEvent.chunk(content))

    def send_retry(self) -> None:
        self.send_event(StreamEvent.retry())

    def send_complete(self, content: str) -> None:
        self.send_event(StreamEvent.complete(content))

    def send_error(self, message: str) -> None:
        self.send_event(StreamEvent.error(message))


class StreamBuffer:
    def __init__(self):
        self._chunks: List[str] = []
        self.retry_count = 0

    def append(self, chunk: str) -> None:
        self._chunks.append(chunk)

    def clear(self) -> None:
        self._chunks.clear()

    def on_retry(self) -> None:
        self.retry_count += 1
        self.clear()

    def get_content(self) -> str:
        return "".join(self._chunks)

    def get_chunks(self) -> List[str]:
        return list(self._chunks)

    def get_retry_count(self) -> int:
        return self.retry_count

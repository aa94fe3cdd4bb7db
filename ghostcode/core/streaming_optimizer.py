"""
Coalesces small streamed chunks into fewer, larger display events.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ghostcode.core.streaming import StreamEventType

BACKPRESSURE_SLEEP_SECONDS = 0.01


@dataclass
class StreamingOptimizerConfig:
    chunk_size: int = 256
    buffer_threshold: int = 1024
    flush_interval_ms: int = 100
    enable_compression: bool = False
    max_buffer_size: int = 10240


@dataclass
class OptimizedStreamEvent:
    event_type: StreamEventType
    content: str
    chunk_index: int
    total_chunks: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)
    processing_time_ms: float = 0.0


@dataclass
class PerformanceMetrics:
    total_events: int = 0
    total_bytes: int = 0
    total_time_ms: float = 0.0
    average_latency_ms: float = 0.0
    throughput_events_per_sec: float = 0.0
    throughput_bytes_per_sec: float = 0.0
    peak_buffer_size: int = 0


class StreamingOptimizer:
    """
    Buffers streamed text and releases it as one event when any of the
    following trips: the buffer reaches ``buffer_threshold``, it reaches
    ``max_buffer_size``, or ``flush_interval_ms`` passed since the last flush.
    """

    def __init__(self, config: Optional[StreamingOptimizerConfig] = None):
        self.config = config or StreamingOptimizerConfig()
        self.metrics = PerformanceMetrics()
        self._buffer: List[str] = []
        self._last_flush = time.monotonic()

    def add_event(self, content: str) -> Optional[OptimizedStreamEvent]:
        self._buffer.append(content)
        self.metrics.total_bytes += len(content)
        self.metrics.peak_buffer_size = max(self.metrics.peak_buffer_size, self.get_buffer_size())

        if self._should_flush():
            return self.flush()
        return None

    def _should_flush(self) -> bool:
        size = self.get_buffer_size()
        if size >= self.config.buffer_threshold:
            return True
        if size >= self.config.max_buffer_size:
            return True
        elapsed_ms = (time.monotonic() - self._last_flush) * 1000
        return elapsed_ms >= self.config.flush_interval_ms

    def flush(self) -> Optional[OptimizedStreamEvent]:
        if not self._buffer:
            return None

        start = time.perf_counter()
        content = self.compress_content("".join(self._buffer))
        processing_time_ms = (time.perf_counter() - start) * 1000

        self.metrics.total_events += 1
        self.metrics.total_time_ms += processing_time_ms

        event = OptimizedStreamEvent(
            event_type=StreamEventType.CHUNK,
            content=content,
            chunk_index=self.metrics.total_events,
            processing_time_ms=processing_time_ms,
        )
        self._buffer.clear()
        self._last_flush = time.monotonic()
        return event

    def chunk_content(self, content: str) -> List[str]:
        size = self.config.chunk_size
        return [content[i:i + size] for i in range(0, len(content), size)]

    def calculate_throughput_events_per_sec(self) -> float:
        if self.metrics.total_time_ms == 0:
            return 0.0
        return self.metrics.total_events / self.metrics.total_time_ms * 1000.0

    def calculate_throughput_bytes_per_sec(self) -> float:
        if self.metrics.total_time_ms == 0:
            return 0.0
        return self.metrics.total_bytes / self.metrics.total_time_ms * 1000.0

    def calculate_average_latency(self) -> float:
        if self.metrics.total_events == 0:
            return 0.0
        return self.metrics.total_time_ms / self.metrics.total_events

    def get_metrics(self) -> PerformanceMetrics:
        return PerformanceMetrics(
            total_events=self.metrics.total_events,
            total_bytes=self.metrics.total_bytes,
            total_time_ms=self.metrics.total_time_ms,
            average_latency_ms=self.calculate_average_latency(),
            throughput_events_per_sec=self.calculate_throughput_events_per_sec(),
            throughput_bytes_per_sec=self.calculate_throughput_bytes_per_sec(),
            peak_buffer_size=self.metrics.peak_buffer_size,
        )

    def reset_metrics(self) -> None:
        self.metrics = PerformanceMetrics()
        self._last_flush = time.monotonic()

    async def apply_backpressure(self) -> None:
        if self.get_buffer_size() > self.config.buffer_threshold:
            await asyncio.sleep(BACKPRESSURE_SLEEP_SECONDS)

    def compress_content(self, content: str) -> str:
        """Collapse whitespace runs when compression is enabled."""
        if self.config.enable_compression:
            return " ".join(content.split())
        return content

    def get_buffer_size(self) -> int:
        return sum(len(part) for part in self._buffer)

    def get_buffer_event_count(self) -> int:
        return len(self._buffer)

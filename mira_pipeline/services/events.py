"""
Pipeline progress events and the per-request channel they travel on.

Stages publish onto one `EventChannel`; consumers (the SSE handler, tests,
batch callers) subscribe independently. Publishing is synchronous so event
order within a request always matches pipeline order.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineEvent:
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True)
class StatusEvent(PipelineEvent):
    stage: str = ""
    type: str = field(default="status", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "stage": self.stage}


@dataclass(frozen=True)
class LanguageDetectedEvent(PipelineEvent):
    language: str = ""
    confidence: float = 0.0
    source: str = ""
    type: str = field(default="language_detected", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "language": self.language,
            "confidence": self.confidence,
            "source": self.source,
        }


@dataclass(frozen=True)
class TranslationChunkEvent(PipelineEvent):
    data: str = ""
    direction: str = "forward"  # "forward" (user text) or "reply" (back-translation)
    tier: str = ""
    type: str = field(default="translation_chunk", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data, "direction": self.direction, "tier": self.tier}


@dataclass(frozen=True)
class CompletedEvent(PipelineEvent):
    result: Dict[str, Any] = field(default_factory=dict)
    type: str = field(default="completed", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "result": self.result}


@dataclass(frozen=True)
class ErrorEvent(PipelineEvent):
    error: str = ""
    fallback: Optional[Dict[str, Any]] = None
    type: str = field(default="error", init=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "error": self.error}
        if self.fallback is not None:
            data["fallback"] = self.fallback
        return data


_CLOSED = object()


class EventChannel:
    """Fan-out channel of pipeline events for a single request."""

    def __init__(self):
        self._subscribers: List[asyncio.Queue] = []
        self._history: List[PipelineEvent] = []
        self._closed = False

    @property
    def events(self) -> List[PipelineEvent]:
        """Everything published so far, in order."""
        return list(self._history)

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: PipelineEvent) -> None:
        if self._closed:
            logger.debug(f"Dropping {event.type} event on closed channel")
            return
        self._history.append(event)
        for queue in self._subscribers:
            queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for queue in self._subscribers:
            queue.put_nowait(_CLOSED)

    def subscribe(self, replay: bool = True) -> AsyncIterator[PipelineEvent]:
        """Subscribe to events. Registration happens immediately, not on first iteration."""
        queue: asyncio.Queue = asyncio.Queue()
        if replay:
            for event in self._history:
                queue.put_nowait(event)
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._subscribers.append(queue)
        return self._drain(queue)

    async def _drain(self, queue: asyncio.Queue) -> AsyncIterator[PipelineEvent]:
        try:
            while True:
                event = await queue.get()
                if event is _CLOSED:
                    break
                yield event
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

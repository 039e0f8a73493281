"""
Server-Sent Events rendering of pipeline progress.

Frames are `data: <json>\n\n`, one per PipelineEvent, followed by a terminal
`{"type": "final", "result": ...}` frame.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from ..errors import StreamAborted
from ..models import ConversationContext, PipelineResult
from .events import EventChannel
from .orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)


def format_sse(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


class StreamEmitter:
    """Wraps the orchestrator for a push-based transport."""

    def __init__(self, orchestrator: PipelineOrchestrator):
        self.orchestrator = orchestrator

    async def stream(
        self,
        text: str,
        target_language: Optional[str] = None,
        context: Optional[ConversationContext] = None,
    ) -> AsyncIterator[str]:
        channel = EventChannel()
        subscription = channel.subscribe()
        task = asyncio.create_task(self._run(text, target_language, context, channel))

        try:
            async for event in subscription:
                yield self._encode(event.to_dict())
            result = await task
            yield self._encode({"type": "final", "result": result.to_dict()})
        except StreamAborted as e:
            logger.warning(f"{StreamAborted.__name__}: {e}")
            yield format_sse({"type": "error", "error": "Stream aborted", "details": str(e)})
        finally:
            await subscription.aclose()
            if not task.done():
                # Client went away mid-stream
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    logger.debug("Pipeline task cancelled after stream closed")

    async def _run(
        self,
        text: str,
        target_language: Optional[str],
        context: Optional[ConversationContext],
        channel: EventChannel,
    ) -> PipelineResult:
        try:
            return await self.orchestrator.run(text, target_language, context, channel=channel)
        finally:
            channel.close()

    @staticmethod
    def _encode(data: Dict[str, Any]) -> str:
        try:
            return format_sse(data)
        except (TypeError, ValueError) as exc:
            raise StreamAborted(f"Unserializable {data.get('type', 'unknown')} event") from exc

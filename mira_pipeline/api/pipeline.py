from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from ..languages import LanguageCode
from ..models import ConversationContext, utc_timestamp
from ..services.orchestrator import PipelineOrchestrator
from ..services.state import PipelineState
from ..services.streaming import StreamEmitter


class ContextPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mood_history: List[str] = Field(default_factory=list, alias="moodHistory")
    recent_topics: List[str] = Field(default_factory=list, alias="recentTopics")
    completed_exercises: int = Field(0, alias="completedExercises")
    streak: int = 0
    preferred_language: Optional[str] = Field(None, alias="preferredLanguage")

    def to_context(self) -> ConversationContext:
        return ConversationContext(
            mood_history=self.mood_history,
            recent_topics=self.recent_topics,
            completed_exercises=self.completed_exercises,
            streak=self.streak,
            preferred_language=LanguageCode.parse(self.preferred_language),
        )


class PipelineRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1)
    target_language: Optional[str] = Field(None, alias="targetLanguage")
    streaming: bool = False
    context: Optional[ContextPayload] = None


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1)
    source_lang: str | None = None
    target_lang: str = Field(..., min_length=1)


class DetectRequest(BaseModel):
    text: str = Field(..., min_length=1)


class StatusResponse(BaseModel):
    success: bool
    message: str
    timestamp: str


class MetricsResponse(BaseModel):
    success: bool
    metrics: Dict[str, Any]
    timestamp: str


router = APIRouter(tags=["pipeline"])


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


def get_pipeline_state(request: Request) -> PipelineState:
    return request.app.state.pipeline_state


@router.post("/pipeline")
async def run_pipeline(
    payload: PipelineRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """
    Run the multilingual conversation pipeline.

    With `streaming: true` the response is an SSE stream:
    - {"type": "status", "stage": "..."}
    - {"type": "language_detected", "language": "hi", "confidence": 0.95, "source": "heuristic"}
    - {"type": "translation_chunk", "data": "...", "direction": "forward" | "reply", "tier": "..."}
    - {"type": "completed", "result": {...}} or {"type": "error", "error": "...", "fallback": {...}}
    - {"type": "final", "result": {...}}
    """
    context = payload.context.to_context() if payload.context else None

    if payload.streaming:
        emitter = StreamEmitter(orchestrator)
        return StreamingResponse(
            emitter.stream(payload.text, payload.target_language, context),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    result = await orchestrator.run(payload.text, payload.target_language, context)
    return result.to_dict()


@router.post("/translate-text")
async def translate(
    payload: TranslateRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
    state: PipelineState = Depends(get_pipeline_state),
) -> Dict[str, Any]:
    """Translate text through the tiered translator. Detects the source language if omitted."""
    target = LanguageCode.parse(payload.target_lang, orchestrator.pivot)
    source = LanguageCode.parse(payload.source_lang)
    detection = None
    if source is None:
        detection = await orchestrator.detector.detect(payload.text)
        source = detection.language

    result = await orchestrator.translator.translate(payload.text, source, target)
    state.metrics.record_translation(result)

    data = result.to_dict()
    data["translated_text"] = result.text
    data["sourceLanguage"] = source.value
    data["targetLanguage"] = target.value
    if detection is not None:
        data["detection"] = detection.to_dict()
    return data


@router.post("/detect-language")
async def detect_language(
    payload: DetectRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    detection = await orchestrator.detector.detect(payload.text)
    return detection.to_dict()


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(state: PipelineState = Depends(get_pipeline_state)) -> MetricsResponse:
    """Get pipeline counters, derived rates and live cache size."""
    return MetricsResponse(
        success=True,
        metrics=state.metrics.report(cache_size=len(state.cache)),
        timestamp=utc_timestamp(),
    )


@router.post("/metrics/reset", response_model=StatusResponse)
async def reset_metrics(state: PipelineState = Depends(get_pipeline_state)) -> StatusResponse:
    """Reset all metrics counters."""
    state.metrics.reset()
    return StatusResponse(success=True, message="Metrics reset successfully", timestamp=utc_timestamp())


@router.post("/cache/clear", response_model=StatusResponse)
async def clear_cache(state: PipelineState = Depends(get_pipeline_state)) -> StatusResponse:
    """Clear translation cache."""
    state.cache.clear()
    return StatusResponse(success=True, message="Translation cache cleared", timestamp=utc_timestamp())

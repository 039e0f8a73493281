"""
Multilingual conversation pipeline.

Language Detection → (Preprocessing ‖ Translation) → Reply Generation → Back-Translation

Every stage degrades instead of failing; only an orchestrator-level bug
reaches the ERROR state, and even then a fallback result is returned.
"""

import logging
import time
from enum import Enum
from typing import List, Optional

from ..config import Settings
from ..errors import (
    DetectionDegraded,
    GenerationDegraded,
    PreprocessingDegraded,
    TranslationDegraded,
    TranslationExhausted,
)
from ..languages import LanguageCode
from ..models import (
    SOURCE_FALLBACK,
    TIER_ERROR,
    TIER_FALLBACK,
    ConversationContext,
    IntentAnalysis,
    PipelineResult,
    TranslationResult,
)
from .capabilities import TranslationCapability
from .concurrency import settle_all
from .detection import LanguageDetectionChain, ModelBackedDetector, ScriptHeuristicDetector
from .events import (
    CompletedEvent,
    ErrorEvent,
    EventChannel,
    LanguageDetectedEvent,
    StatusEvent,
    TranslationChunkEvent,
)
from .generation import ReplyGenerator
from .preprocessing import IntentExtractor
from .scoring import ConfidenceScorer
from .state import PipelineState
from .translator import TieredTranslator

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    STARTED = "started"
    DETECTING = "detecting_language"
    PREPROCESSING = "preprocessing"
    TRANSLATING = "translating"
    GENERATING = "generating"
    BACK_TRANSLATING = "back_translating"
    COMPLETED = "completed"
    ERROR = "error"


_TERMINAL_STAGES = (PipelineStage.COMPLETED, PipelineStage.ERROR)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class _Run:
    """Per-request bookkeeping: stage trace, degradations, event channel."""

    def __init__(self, channel: EventChannel):
        self.channel = channel
        self.stages: List[str] = []
        self.degradations: List[str] = []
        self.outcome_tier: Optional[str] = None

    def enter(self, stage: PipelineStage) -> None:
        self.stages.append(stage.value)
        logger.debug(f"Pipeline stage: {stage.value}")
        if stage not in _TERMINAL_STAGES:
            self.channel.publish(StatusEvent(stage=stage.value))

    def degrade(self, error_type: type) -> None:
        if error_type.__name__ not in self.degradations:
            self.degradations.append(error_type.__name__)

    def degrade_translation(self, result: TranslationResult) -> None:
        if result.tier == TIER_FALLBACK:
            self.degrade(TranslationDegraded)
        elif result.tier == TIER_ERROR:
            self.degrade(TranslationDegraded)
            self.degrade(TranslationExhausted)


class PipelineOrchestrator:
    """Sequences the pipeline stages and aggregates timings and metrics."""

    def __init__(
        self,
        detector: LanguageDetectionChain,
        translator: TieredTranslator,
        extractor: IntentExtractor,
        generator: ReplyGenerator,
        state: PipelineState,
        pivot: LanguageCode = LanguageCode.EN,
    ):
        self.detector = detector
        self.translator = translator
        self.extractor = extractor
        self.generator = generator
        self.state = state
        self.pivot = pivot

    @classmethod
    def build(cls, settings: Settings, capability: TranslationCapability, state: PipelineState) -> "PipelineOrchestrator":
        pivot = LanguageCode.parse(settings.pivot_language, LanguageCode.EN)
        detector = LanguageDetectionChain(
            ScriptHeuristicDetector(scan_chars=settings.heuristic_scan_chars),
            ModelBackedDetector(capability, pivot=pivot, excerpt_chars=settings.detection_excerpt_chars),
        )
        translator = TieredTranslator(
            capability,
            state.cache,
            scorer=ConfidenceScorer(),
            confidence_threshold=settings.confidence_threshold,
            fallback_confidence=settings.fallback_confidence,
            cache_prefix_chars=settings.cache_key_prefix_chars,
            cache_fallback=settings.cache_fallback_translations,
        )
        return cls(
            detector=detector,
            translator=translator,
            extractor=IntentExtractor(capability),
            generator=ReplyGenerator(capability, crisis_hotline=settings.crisis_hotline),
            state=state,
            pivot=pivot,
        )

    async def run(
        self,
        text: str,
        target_language: Optional[str] = None,
        context: Optional[ConversationContext] = None,
        channel: Optional[EventChannel] = None,
    ) -> PipelineResult:
        """Process one message end to end. Never raises."""
        pipeline_start = time.perf_counter()
        run = _Run(channel if channel is not None else EventChannel())
        target = LanguageCode.parse(target_language, self.pivot)
        context = context or ConversationContext()

        try:
            run.enter(PipelineStage.STARTED)
            result = await self._process(text, target, context, run, pipeline_start)
        except Exception as e:
            logger.exception("Pipeline error; returning fallback result")
            run.enter(PipelineStage.ERROR)
            run.outcome_tier = TIER_ERROR
            result = self._fallback_result(text, target, run, pipeline_start, e)
            run.channel.publish(ErrorEvent(error=str(e) or type(e).__name__, fallback=result.to_dict()))

        self.state.metrics.record_request(
            result.performance.get("totalMs", _elapsed_ms(pipeline_start)), run.outcome_tier
        )
        return result

    async def _process(
        self,
        text: str,
        target: LanguageCode,
        context: ConversationContext,
        run: _Run,
        pipeline_start: float,
    ) -> PipelineResult:
        # Step 1: Language detection
        run.enter(PipelineStage.DETECTING)
        detection = await self.detector.detect(text)
        if detection.source == SOURCE_FALLBACK:
            run.degrade(DetectionDegraded)
        run.channel.publish(
            LanguageDetectedEvent(
                language=detection.language.value,
                confidence=detection.confidence,
                source=detection.source,
            )
        )
        logger.info(f"Language detected: {detection.language.value} ({detection.language.display_name})")

        # Step 2: Preprocessing and forward translation, joined without fail-fast
        run.enter(PipelineStage.PREPROCESSING)
        run.enter(PipelineStage.TRANSLATING)
        preprocess_start = time.perf_counter()
        analysis_outcome, translation_outcome = await settle_all(
            self.extractor.extract(text, detection.language),
            self.translator.translate(text, detection.language, target),
        )
        preprocessing_ms = _elapsed_ms(preprocess_start)

        if not analysis_outcome.ok:
            logger.warning(f"{PreprocessingDegraded.__name__}: {analysis_outcome.error!r}")
            run.degrade(PreprocessingDegraded)
        analysis = analysis_outcome.value_or(IntentAnalysis())

        if translation_outcome.ok:
            forward = translation_outcome.value
        else:
            logger.warning(f"{TranslationExhausted.__name__}: forward translation crashed: {translation_outcome.error!r}")
            forward = TranslationResult(text=text, confidence=0.5, latency_ms=preprocessing_ms, tier=TIER_ERROR)
        self.state.metrics.record_translation(forward)
        run.outcome_tier = forward.tier
        run.degrade_translation(forward)
        run.channel.publish(TranslationChunkEvent(data=forward.text, direction="forward", tier=forward.tier))

        # Step 3: Reply generation on the translated text
        run.enter(PipelineStage.GENERATING)
        generation_start = time.perf_counter()
        try:
            reply_pivot = await self.generator.generate(forward.text, analysis, context, detection.language, target)
        except Exception as e:
            logger.warning(f"{GenerationDegraded.__name__}: using safe reply: {e}")
            run.degrade(GenerationDegraded)
            reply_pivot = self.generator.fallback_reply
        generation_ms = _elapsed_ms(generation_start)

        # Step 4: Back-translation into the user's language
        run.enter(PipelineStage.BACK_TRANSLATING)
        reply_language = LanguageCode.parse(context.preferred_language, detection.language)
        back = await self.translator.translate(reply_pivot, target, reply_language)
        self.state.metrics.record_translation(back)
        run.degrade_translation(back)
        run.channel.publish(TranslationChunkEvent(data=back.text, direction="reply", tier=back.tier))

        run.enter(PipelineStage.COMPLETED)
        total_ms = _elapsed_ms(pipeline_start)
        result = PipelineResult(
            original_text=text,
            translated_text=forward.text,
            detected_language=detection.language,
            target_language=target,
            confidence=forward.confidence,
            model=forward.model,
            analysis=analysis,
            reply_pivot=reply_pivot,
            reply=back.text,
            reply_language=reply_language,
            reply_tier=back.tier,
            detection_source=detection.source,
            performance={
                "languageDetectionMs": detection.latency_ms,
                "preprocessingMs": preprocessing_ms,
                "translationMs": forward.latency_ms,
                "generationMs": generation_ms,
                "backTranslationMs": back.latency_ms,
                "totalMs": total_ms,
            },
            degradations=run.degradations,
            stages=run.stages,
        )
        run.channel.publish(CompletedEvent(result=result.to_dict()))
        logger.info(
            f"Pipeline completed in {total_ms}ms "
            f"(forward={forward.tier}, reply={back.tier}, degradations={run.degradations or 'none'})"
        )
        return result

    def _fallback_result(
        self,
        text: str,
        target: LanguageCode,
        run: _Run,
        pipeline_start: float,
        error: Exception,
    ) -> PipelineResult:
        reply = self.generator.fallback_reply
        return PipelineResult(
            original_text=text,
            translated_text=text,
            detected_language=self.pivot,
            target_language=target,
            confidence=0.5,
            model=TIER_ERROR,
            reply_pivot=reply,
            reply=reply,
            reply_language=self.pivot,
            reply_tier=TIER_ERROR,
            performance={"totalMs": _elapsed_ms(pipeline_start)},
            degradations=run.degradations,
            stages=run.stages,
            success=False,
            error=str(error) or type(error).__name__,
        )

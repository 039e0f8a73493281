import logging
import time
from typing import Optional

from ..errors import TranslationDegraded, TranslationExhausted
from ..models import (
    TIER_CACHE,
    TIER_ERROR,
    TIER_FALLBACK,
    TIER_PASSTHROUGH,
    TIER_PRIMARY,
    TranslationResult,
)
from .cache import TranslationCache, make_cache_key
from .capabilities import TranslationCapability, extract_text
from .scoring import ConfidenceScorer

logger = logging.getLogger(__name__)


class TieredTranslator:
    """Translation with confidence gating across two model tiers.

    Flow:
    - same language: passthrough
    - cache hit: cached primary-tier text
    - primary (fast) model, scored; accepted and cached at >= threshold
    - fallback (stronger) model at a fixed confidence
    - both failed: original text, tier "error"

    Never raises.
    """

    def __init__(
        self,
        capability: TranslationCapability,
        cache: TranslationCache,
        scorer: Optional[ConfidenceScorer] = None,
        confidence_threshold: float = 0.85,
        fallback_confidence: float = 0.95,
        cache_prefix_chars: int = 50,
        cache_fallback: bool = False,
    ):
        self.capability = capability
        self.cache = cache
        self.scorer = scorer or ConfidenceScorer()
        self.confidence_threshold = confidence_threshold
        self.fallback_confidence = fallback_confidence
        self.cache_prefix_chars = cache_prefix_chars
        self.cache_fallback = cache_fallback

    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        source_lang = getattr(source_lang, "value", source_lang)
        target_lang = getattr(target_lang, "value", target_lang)
        start_time = time.perf_counter()

        if source_lang == target_lang:
            return TranslationResult(text=text, confidence=1.0, latency_ms=0, tier=TIER_PASSTHROUGH)

        cache_key = make_cache_key(source_lang, target_lang, text, self.cache_prefix_chars)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit ({source_lang}->{target_lang}): {text[:30]}...")
            return TranslationResult(
                text=cached,
                confidence=1.0,
                latency_ms=self._elapsed_ms(start_time),
                tier=TIER_CACHE,
            )

        try:
            raw = await self.capability.translate(text, source_lang, target_lang, tier=TIER_PRIMARY)
            translation = extract_text(raw, default=text)
            confidence = self.scorer.score(text, translation, source_lang, target_lang)
            if confidence >= self.confidence_threshold:
                self.cache.set(cache_key, translation)
                return TranslationResult(
                    text=translation,
                    confidence=confidence,
                    latency_ms=self._elapsed_ms(start_time),
                    tier=TIER_PRIMARY,
                    model=self.capability.model_for(TIER_PRIMARY),
                )
            logger.warning(
                f"{TranslationDegraded.__name__}: low confidence {confidence:.2f} "
                f"({source_lang}->{target_lang}), using fallback"
            )
        except Exception as e:
            logger.warning(f"{TranslationDegraded.__name__}: primary tier failed ({source_lang}->{target_lang}): {e}")

        return await self._translate_fallback(text, source_lang, target_lang, cache_key, start_time)

    async def _translate_fallback(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        cache_key,
        start_time: float,
    ) -> TranslationResult:
        try:
            raw = await self.capability.translate(text, source_lang, target_lang, tier=TIER_FALLBACK)
        except Exception as e:
            logger.warning(f"{TranslationExhausted.__name__}: fallback tier failed, passing text through: {e}")
            return TranslationResult(
                text=text,
                confidence=0.5,
                latency_ms=self._elapsed_ms(start_time),
                tier=TIER_ERROR,
            )

        translation = extract_text(raw, default=text)
        if self.cache_fallback:
            self.cache.set(cache_key, translation)
        return TranslationResult(
            text=translation,
            confidence=self.fallback_confidence,
            latency_ms=self._elapsed_ms(start_time),
            tier=TIER_FALLBACK,
            model=self.capability.model_for(TIER_FALLBACK),
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)

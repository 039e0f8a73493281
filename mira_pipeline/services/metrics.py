from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from ..languages import LanguageCode
from ..models import TIER_CACHE, TIER_ERROR, TIER_FALLBACK, TIER_PRIMARY, TranslationResult


@dataclass(frozen=True)
class MetricsSnapshot:
    total_requests: int = 0
    fallback_count: int = 0
    cache_hits: int = 0
    primary_successes: int = 0
    average_latency_ms: float = 0.0
    translations: int = 0
    translation_tiers: Dict[str, int] = field(default_factory=dict)


def _percent(part: int, total: int) -> str:
    if total <= 0:
        return "0%"
    return f"{part / total * 100:.2f}%"


class MetricsRegistry:
    """Process-wide running counters for the pipeline.

    Request counters (`primary_successes`, `cache_hits`, `fallback_count`)
    move at most once per request, from the tier the request was answered
    with, so the derived rates never pass 100%. Every translation result,
    including back-translations and direct translate calls, is tallied
    separately by tier.

    Counters only grow; `reset()` is the explicit operator action.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self._total_requests = 0
        self._fallback_count = 0
        self._cache_hits = 0
        self._primary_successes = 0
        self._average_latency_ms = 0.0
        self._translations = 0
        self._translation_tiers: Counter = Counter()

    def record_request(self, latency_ms: float, tier: Optional[str] = None) -> None:
        self._total_requests += 1
        # Cumulative running mean
        self._average_latency_ms += (latency_ms - self._average_latency_ms) / self._total_requests

        if tier == TIER_CACHE:
            self._cache_hits += 1
        elif tier == TIER_PRIMARY:
            self._primary_successes += 1
        elif tier in (TIER_FALLBACK, TIER_ERROR):
            self._fallback_count += 1

    def record_translation(self, result: TranslationResult) -> None:
        self._translations += 1
        self._translation_tiers[result.tier] += 1

    def snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            total_requests=self._total_requests,
            fallback_count=self._fallback_count,
            cache_hits=self._cache_hits,
            primary_successes=self._primary_successes,
            average_latency_ms=round(self._average_latency_ms, 2),
            translations=self._translations,
            translation_tiers=dict(self._translation_tiers),
        )

    def report(self, cache_size: int) -> Dict[str, Any]:
        """Snapshot plus derived rates, in the shape served by the metrics endpoint."""
        snapshot = self.snapshot()
        data: Dict[str, Any] = {
            "requests": snapshot.total_requests,
            "gemmaSuccess": snapshot.primary_successes,
            "fallbacks": snapshot.fallback_count,
            "cacheHits": snapshot.cache_hits,
            "avgLatency": snapshot.average_latency_ms,
            "translations": snapshot.translations,
            "translationTiers": snapshot.translation_tiers,
            "snapshot": asdict(snapshot),
            "cacheSize": cache_size,
            "supportedLanguages": LanguageCode.codes(),
            "gemmaSuccessRate": _percent(snapshot.primary_successes, snapshot.total_requests),
            "fallbackRate": _percent(snapshot.fallback_count, snapshot.total_requests),
            "cacheHitRate": _percent(snapshot.cache_hits, snapshot.total_requests),
        }
        return data

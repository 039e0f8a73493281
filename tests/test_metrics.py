"""
Metrics registry and concurrency combinator tests.
"""

import asyncio

import pytest

from mira_pipeline.models import IntentAnalysis, TranslationResult
from mira_pipeline.services.concurrency import settle_all
from mira_pipeline.services.metrics import MetricsRegistry
from mira_pipeline.services.preprocessing import IntentExtractor


def result(tier):
    return TranslationResult(text="x", confidence=1.0, latency_ms=1, tier=tier)


def test_translation_counters_by_tier():
    registry = MetricsRegistry()
    for tier in ("primary", "primary", "cache", "fallback", "error", "passthrough"):
        registry.record_translation(result(tier))
    snapshot = registry.snapshot()
    assert snapshot.translations == 6
    assert snapshot.translation_tiers == {"primary": 2, "cache": 1, "fallback": 1, "error": 1, "passthrough": 1}
    # Translation results alone never move the request counters
    assert snapshot.total_requests == 0
    assert (snapshot.primary_successes, snapshot.cache_hits, snapshot.fallback_count) == (0, 0, 0)


def test_request_counters_by_outcome_tier():
    registry = MetricsRegistry()
    for tier in ("primary", "primary", "cache", "fallback", "error", "passthrough", None):
        registry.record_request(10, tier)
    snapshot = registry.snapshot()
    assert snapshot.total_requests == 7
    assert snapshot.primary_successes == 2
    assert snapshot.cache_hits == 1
    assert snapshot.fallback_count == 2


def test_running_average_latency():
    registry = MetricsRegistry()
    for latency in (100, 200, 600):
        registry.record_request(latency)
    snapshot = registry.snapshot()
    assert snapshot.total_requests == 3
    assert snapshot.average_latency_ms == pytest.approx(300.0)


def test_report_rates():
    registry = MetricsRegistry()
    for tier in ("primary", "fallback", "passthrough", "passthrough"):
        registry.record_request(10, tier)
    registry.record_translation(result("primary"))
    registry.record_translation(result("fallback"))
    report = registry.report(cache_size=7)
    assert report["gemmaSuccessRate"] == "25.00%"
    assert report["fallbackRate"] == "25.00%"
    assert report["cacheHitRate"] == "0.00%"
    assert report["translations"] == 2
    assert report["cacheSize"] == 7


@pytest.mark.parametrize(
    "tier,key",
    [("primary", "gemmaSuccessRate"), ("fallback", "fallbackRate"), ("error", "fallbackRate"), ("cache", "cacheHitRate")],
)
def test_single_request_rate_is_full(tier, key):
    """One request answered from a tier reports exactly 100% for its rate."""
    registry = MetricsRegistry()
    registry.record_request(10, tier)
    # Forward and back-translation both land in the same tier
    registry.record_translation(result(tier))
    registry.record_translation(result(tier))
    report = registry.report(cache_size=0)
    assert report[key] == "100.00%"


def test_reset():
    registry = MetricsRegistry()
    registry.record_request(50, "cache")
    registry.record_translation(result("cache"))
    registry.reset()
    assert registry.snapshot().total_requests == 0
    assert registry.snapshot().cache_hits == 0
    assert registry.snapshot().translations == 0


def test_translation_result_confidence_is_clamped():
    assert result("primary").confidence == 1.0
    assert TranslationResult(text="x", confidence=0.1, latency_ms=0, tier="error").confidence == 0.5
    assert TranslationResult(text="x", confidence=1.7, latency_ms=0, tier="cache").confidence == 1.0


def test_settle_all_keeps_both_outcomes():
    async def ok():
        await asyncio.sleep(0)
        return "translated"

    async def broken():
        raise RuntimeError("intent model down")

    outcomes = asyncio.run(settle_all(broken(), ok()))
    assert not outcomes[0].ok
    assert isinstance(outcomes[0].error, RuntimeError)
    assert outcomes[0].value_or("default") == "default"
    assert outcomes[1].ok
    assert outcomes[1].value == "translated"


def test_settle_all_reraises_cancellation():
    async def cancelled():
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(settle_all(cancelled()))


@pytest.mark.parametrize(
    "response,expected",
    [
        ('{"intent": "crisis", "emotion": "sad", "urgency": "critical"}', ("crisis", "sad", "critical")),
        ('Sure! ```json\n{"intent": "mood_logging", "emotion": "HAPPY", "urgency": "low"}\n```', ("mood_logging", "happy", "low")),
        ('{"intent": "dancing", "emotion": "sad"}', ("casual_chat", "sad", "low")),
        ("I cannot help with that", ("casual_chat", "neutral", "low")),
        ("{not json}", ("casual_chat", "neutral", "low")),
    ],
)
def test_intent_parse(response, expected):
    analysis = IntentExtractor.parse(response)
    assert (analysis.intent, analysis.emotion, analysis.urgency) == expected


def test_intent_default_is_not_urgent():
    assert IntentAnalysis().is_urgent is False
    assert IntentAnalysis(urgency="high").is_urgent is True

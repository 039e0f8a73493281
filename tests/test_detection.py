"""
Language detection tests: script heuristics and model fallback.
"""

import asyncio

import pytest

from mira_pipeline.languages import LanguageCode
from mira_pipeline.services.detection import (
    LanguageDetectionChain,
    ModelBackedDetector,
    ScriptHeuristicDetector,
)

from conftest import CapabilityDown, FakeCapability


@pytest.fixture
def heuristic():
    return ScriptHeuristicDetector(scan_chars=100)


def test_devanagari_detected_as_hindi(heuristic):
    result = heuristic.detect("नमस्ते")
    assert result is not None
    assert result.language == LanguageCode.HI
    assert result.confidence == 0.95
    assert result.source == "heuristic"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("வணக்கம்", LanguageCode.TA),
        ("నమస్కారం", LanguageCode.TE),
        ("নমস্কার", LanguageCode.BN),
        ("ਸਤ ਸ੍ਰੀ ਅਕਾਲ", LanguageCode.PA),
        ("નમસ્તે", LanguageCode.GU),
        ("ನಮಸ್ಕಾರ", LanguageCode.KN),
        ("നമസ്കാരം", LanguageCode.ML),
    ],
)
def test_each_script_maps_to_its_language(heuristic, text, expected):
    assert heuristic.detect(text).language == expected


def test_latin_and_empty_text_have_no_opinion(heuristic):
    assert heuristic.detect("I feel a bit low today") is None
    assert heuristic.detect("") is None
    assert heuristic.detect("12345 !?") is None


def test_priority_order_wins_over_position(heuristic):
    """Tamil appears first but Devanagari has higher priority."""
    result = heuristic.detect("வணக்கம் नमस्ते")
    assert result.language == LanguageCode.HI


def test_only_prefix_is_scanned():
    detector = ScriptHeuristicDetector(scan_chars=10)
    assert detector.detect("a" * 10 + "नमस्ते") is None


def test_model_detector_exact_code():
    detector = ModelBackedDetector(FakeCapability(detect="ta"), pivot=LanguageCode.EN)
    result = asyncio.run(detector.detect("vanakkam"))
    assert result.language == LanguageCode.TA
    assert result.confidence == 0.9
    assert result.source == "model"


def test_model_detector_loose_response():
    detector = ModelBackedDetector(FakeCapability(detect="Language: hi\n"), pivot=LanguageCode.EN)
    result = asyncio.run(detector.detect("main theek hoon"))
    assert result.language == LanguageCode.HI
    assert result.confidence == 0.7


@pytest.mark.parametrize(
    "response,expected",
    [
        ("Hindi", LanguageCode.HI),
        ("Tamil is the language", LanguageCode.TA),
        ("Marathi.", LanguageCode.MR),
        ("The text is written in Bengali", LanguageCode.BN),
    ],
)
def test_model_detector_language_name_response(response, expected):
    """A model that answers with the language name instead of the code still parses."""
    detector = ModelBackedDetector(FakeCapability(detect=response), pivot=LanguageCode.EN)
    result = asyncio.run(detector.detect("some romanized text"))
    assert result.language == expected
    assert result.confidence == 0.7
    assert result.source == "model"


def test_model_detector_unparseable_defaults_to_pivot():
    detector = ModelBackedDetector(FakeCapability(detect="no idea"), pivot=LanguageCode.EN)
    result = asyncio.run(detector.detect("???"))
    assert result.language == LanguageCode.EN
    assert result.confidence == 0.7
    assert result.source == "model"


def test_model_detector_failure_degrades():
    detector = ModelBackedDetector(FakeCapability(detect=CapabilityDown), pivot=LanguageCode.EN)
    result = asyncio.run(detector.detect("hello"))
    assert result.language == LanguageCode.EN
    assert result.confidence == 0.5
    assert result.source == "fallback"


def test_model_detector_sends_excerpt_only():
    capability = FakeCapability(detect="en")
    detector = ModelBackedDetector(capability, pivot=LanguageCode.EN, excerpt_chars=5)
    asyncio.run(detector.detect("hello world"))
    assert capability.calls == [("detect", "hello")]


def test_chain_skips_model_when_script_matches(heuristic):
    capability = FakeCapability(detect="en")
    chain = LanguageDetectionChain(heuristic, ModelBackedDetector(capability, pivot=LanguageCode.EN))
    result = asyncio.run(chain.detect("मुझे नींद नहीं आती"))
    assert result.language == LanguageCode.HI
    assert capability.count("detect") == 0


def test_chain_falls_back_to_model_for_latin(heuristic):
    capability = FakeCapability(detect="mr")
    chain = LanguageDetectionChain(heuristic, ModelBackedDetector(capability, pivot=LanguageCode.EN))
    result = asyncio.run(chain.detect("mala bara vatat nahi"))
    assert result.language == LanguageCode.MR
    assert result.source == "model"
    assert capability.count("detect") == 1


def test_language_code_parse():
    assert LanguageCode.parse("HI") == LanguageCode.HI
    assert LanguageCode.parse("ta-IN") == LanguageCode.TA
    assert LanguageCode.parse("fr", LanguageCode.EN) == LanguageCode.EN
    assert LanguageCode.parse(None) is None

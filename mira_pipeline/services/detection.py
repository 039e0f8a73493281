"""
Language detection: Unicode script heuristics first, model fallback second.
"""

import logging
import re
import time
from typing import List, Optional, Tuple

from ..errors import DetectionDegraded
from ..languages import LANGUAGE_NAMES, LanguageCode
from ..models import SOURCE_FALLBACK, SOURCE_HEURISTIC, SOURCE_MODEL, DetectionResult
from .capabilities import TranslationCapability

logger = logging.getLogger(__name__)

HEURISTIC_CONFIDENCE = 0.95
EXACT_MODEL_CONFIDENCE = 0.9
LOOSE_MODEL_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.5


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class ScriptHeuristicDetector:
    """Zero-latency language guess from Unicode block ranges.

    Scripts are checked in a fixed priority order; Devanagari is reported as
    Hindi even though Marathi shares the block.
    """

    SCRIPT_RANGES: List[Tuple[LanguageCode, int, int]] = [
        (LanguageCode.HI, 0x0900, 0x097F),  # Devanagari
        (LanguageCode.TA, 0x0B80, 0x0BFF),  # Tamil
        (LanguageCode.TE, 0x0C00, 0x0C7F),  # Telugu
        (LanguageCode.BN, 0x0980, 0x09FF),  # Bengali
        (LanguageCode.PA, 0x0A00, 0x0A7F),  # Gurmukhi
        (LanguageCode.GU, 0x0A80, 0x0AFF),  # Gujarati
        (LanguageCode.KN, 0x0C80, 0x0CFF),  # Kannada
        (LanguageCode.ML, 0x0D00, 0x0D7F),  # Malayalam
    ]

    def __init__(self, scan_chars: int = 100):
        self.scan_chars = scan_chars

    def detect(self, text: str) -> Optional[DetectionResult]:
        """Detect language from text. Returns None for Latin or unmatched input."""
        if not text:
            return None
        start = time.perf_counter()

        seen = set()
        for char in text[: self.scan_chars]:
            point = ord(char)
            if point < 0x0900 or point > 0x0D7F:
                continue
            for index, (_, low, high) in enumerate(self.SCRIPT_RANGES):
                if low <= point <= high:
                    seen.add(index)
                    break

        if not seen:
            return None
        language = self.SCRIPT_RANGES[min(seen)][0]
        return DetectionResult(
            language=language,
            confidence=HEURISTIC_CONFIDENCE,
            latency_ms=_elapsed_ms(start),
            source=SOURCE_HEURISTIC,
        )


class ModelBackedDetector:
    """Fallback detection through the model capability. Never raises."""

    _TOKEN = re.compile(r"[a-z]+")
    # "hindi" -> hi, so a model that answers with a name still parses
    _BY_NAME = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}

    def __init__(self, capability: TranslationCapability, pivot: LanguageCode, excerpt_chars: int = 100):
        self.capability = capability
        self.pivot = pivot
        self.excerpt_chars = excerpt_chars

    def parse(self, response: str) -> Tuple[LanguageCode, float]:
        raw = (response or "").strip().lower()
        for token in self._TOKEN.findall(raw):
            language = LanguageCode.parse(token) or self._BY_NAME.get(token)
            if language is not None:
                confidence = EXACT_MODEL_CONFIDENCE if raw == language.value else LOOSE_MODEL_CONFIDENCE
                return language, confidence
        return self.pivot, LOOSE_MODEL_CONFIDENCE

    async def detect(self, text: str) -> DetectionResult:
        start = time.perf_counter()
        try:
            response = await self.capability.detect_language(text[: self.excerpt_chars])
        except Exception as e:
            logger.warning(f"{DetectionDegraded.__name__}: model detection failed, assuming {self.pivot.value}: {e}")
            return DetectionResult(
                language=self.pivot,
                confidence=FALLBACK_CONFIDENCE,
                latency_ms=_elapsed_ms(start),
                source=SOURCE_FALLBACK,
            )

        language, confidence = self.parse(response)
        return DetectionResult(
            language=language,
            confidence=confidence,
            latency_ms=_elapsed_ms(start),
            source=SOURCE_MODEL,
        )


class LanguageDetectionChain:
    """Heuristic detector with model-backed fallback."""

    def __init__(self, heuristic: ScriptHeuristicDetector, model: ModelBackedDetector):
        self.heuristic = heuristic
        self.model = model

    async def detect(self, text: str) -> DetectionResult:
        start = time.perf_counter()
        result = self.heuristic.detect(text)
        if result is None:
            result = await self.model.detect(text)
        logger.debug(
            f"Language detected: {result.language.value} ({result.source}, "
            f"confidence={result.confidence}) in {_elapsed_ms(start)}ms"
        )
        return DetectionResult(
            language=result.language,
            confidence=result.confidence,
            latency_ms=_elapsed_ms(start),
            source=result.source,
        )

from ..models import clamp_confidence


class ConfidenceScorer:
    """Score translation plausibility based on heuristics."""

    BASE_SCORE = 0.85
    UNCHANGED_PENALTY = 0.3
    TRUNCATION_PENALTY = 0.2
    TRUNCATION_MIN_LENGTH = 100
    TRUNCATION_RATIO = 0.3
    WELL_SUPPORTED_BOOST = 0.05
    WELL_SUPPORTED_PAIRS = frozenset({"en-hi", "hi-en", "en-ta", "ta-en"})

    def score(self, original: str, translated: str, source_lang: str, target_lang: str) -> float:
        source_lang = getattr(source_lang, "value", source_lang)
        target_lang = getattr(target_lang, "value", target_lang)
        score = self.BASE_SCORE

        # No-op "translation"
        if translated == original and source_lang != target_lang:
            score -= self.UNCHANGED_PENALTY

        # Suspiciously truncated output
        if len(original) > self.TRUNCATION_MIN_LENGTH and len(translated) < len(original) * self.TRUNCATION_RATIO:
            score -= self.TRUNCATION_PENALTY

        if f"{source_lang}-{target_lang}" in self.WELL_SUPPORTED_PAIRS:
            score += self.WELL_SUPPORTED_BOOST

        return clamp_confidence(score)

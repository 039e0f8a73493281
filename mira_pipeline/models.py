"""
Result and context types passed between pipeline stages.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

from .languages import LanguageCode


# Detection sources
SOURCE_HEURISTIC = "heuristic"
SOURCE_MODEL = "model"
SOURCE_FALLBACK = "fallback"

# Translation tiers
TIER_PRIMARY = "primary"
TIER_FALLBACK = "fallback"
TIER_CACHE = "cache"
TIER_PASSTHROUGH = "passthrough"
TIER_ERROR = "error"

MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 1.0


def clamp_confidence(value: float) -> float:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, value))


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class DetectionResult:
    language: LanguageCode
    confidence: float
    latency_ms: int
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language.value,
            "confidence": self.confidence,
            "latencyMs": self.latency_ms,
            "source": self.source,
        }


@dataclass(frozen=True)
class TranslationResult:
    text: str
    confidence: float
    latency_ms: int
    tier: str
    model: str = ""

    def __post_init__(self):
        # Frozen dataclass: bypass __setattr__ to clamp in place
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))
        if not self.model:
            object.__setattr__(self, "model", self.tier)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "translation": self.text,
            "confidence": self.confidence,
            "latencyMs": self.latency_ms,
            "tier": self.tier,
            "model": self.model,
        }


INTENTS = ("mood_logging", "seeking_help", "crisis", "casual_chat", "exercise_request")
EMOTIONS = ("happy", "sad", "anxious", "stressed", "angry", "neutral")
URGENCIES = ("low", "medium", "high", "critical")


class IntentAnalysis(BaseModel):
    """Intent, emotion and urgency extracted from a user message."""

    intent: str = "casual_chat"
    emotion: str = "neutral"
    urgency: str = "low"

    @field_validator("intent", mode="before")
    @classmethod
    def _known_intent(cls, value):
        return _one_of(value, INTENTS, "casual_chat")

    @field_validator("emotion", mode="before")
    @classmethod
    def _known_emotion(cls, value):
        return _one_of(value, EMOTIONS, "neutral")

    @field_validator("urgency", mode="before")
    @classmethod
    def _known_urgency(cls, value):
        return _one_of(value, URGENCIES, "low")

    @property
    def is_urgent(self) -> bool:
        return self.urgency in ("high", "critical")


def _one_of(value: Any, allowed: tuple, default: str) -> str:
    if not isinstance(value, str):
        return default
    value = value.strip().lower()
    return value if value in allowed else default


@dataclass
class ConversationContext:
    """Caller-supplied state threaded through a request. Never persisted here."""

    mood_history: List[str] = field(default_factory=list)
    recent_topics: List[str] = field(default_factory=list)
    completed_exercises: int = 0
    streak: int = 0
    preferred_language: Optional[LanguageCode] = None

    def as_prompt_lines(self) -> List[str]:
        return [
            f"- Recent moods: {', '.join(self.mood_history[-5:]) or 'none'}",
            f"- Recent topics: {', '.join(self.recent_topics[-5:]) or 'none'}",
            f"- Completed exercises: {self.completed_exercises}",
            f"- Current streak: {self.streak} days",
        ]


@dataclass
class PipelineResult:
    original_text: str
    translated_text: str
    detected_language: LanguageCode
    target_language: LanguageCode
    confidence: float
    model: str
    analysis: IntentAnalysis = field(default_factory=IntentAnalysis)
    reply_pivot: str = ""
    reply: str = ""
    reply_language: Optional[LanguageCode] = None
    reply_tier: str = ""
    detection_source: str = SOURCE_FALLBACK
    performance: Dict[str, int] = field(default_factory=dict)
    degradations: List[str] = field(default_factory=list)
    stages: List[str] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "originalText": self.original_text,
            "translatedText": self.translated_text,
            "detectedLanguage": self.detected_language.value,
            "detectionSource": self.detection_source,
            "targetLanguage": self.target_language.value,
            "confidence": self.confidence,
            "model": self.model,
            "preprocessing": self.analysis.model_dump(),
            "reply": self.reply,
            "replyPivot": self.reply_pivot,
            "replyLanguage": (self.reply_language or self.detected_language).value,
            "replyTier": self.reply_tier,
            "performance": dict(self.performance),
            "degradations": list(self.degradations),
            "stages": list(self.stages),
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

from dataclasses import dataclass, field

from ..config import Settings
from .cache import TranslationCache
from .metrics import MetricsRegistry


@dataclass
class PipelineState:
    """Shared mutable state, created once at process start and injected."""

    cache: TranslationCache = field(default_factory=TranslationCache)
    metrics: MetricsRegistry = field(default_factory=MetricsRegistry)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineState":
        return cls(
            cache=TranslationCache(
                max_size=settings.cache_max_size,
                ttl_seconds=settings.cache_ttl_seconds,
            ),
            metrics=MetricsRegistry(),
        )

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    backend_port: int = Field(8000, alias="BACKEND_PORT")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    # Pivot language for reply generation
    pivot_language: str = Field("en", alias="PIVOT_LANGUAGE")

    # Capability backend: "cloud" (Gemini REST) or "local" (Ollama-style server)
    capability_backend: str = Field("cloud", alias="CAPABILITY_BACKEND")
    capability_timeout_s: float = Field(20.0, alias="CAPABILITY_TIMEOUT_S")

    # Cloud backend
    gemini_api_key: str = Field("", alias="GEMINI_API_KEY")
    gemini_base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_BASE_URL"
    )
    cloud_detector_model: str = Field("gemini-2.5-flash", alias="CLOUD_DETECTOR_MODEL")
    cloud_primary_model: str = Field("gemma-3-12b-it", alias="CLOUD_PRIMARY_MODEL")
    cloud_fallback_model: str = Field("gemini-2.5-flash", alias="CLOUD_FALLBACK_MODEL")
    cloud_reply_model: str = Field("gemini-2.5-flash", alias="CLOUD_REPLY_MODEL")
    cloud_urgent_reply_model: str = Field("gemini-2.5-pro", alias="CLOUD_URGENT_REPLY_MODEL")

    # Local backend
    ollama_base_url: str = Field("http://localhost:11434", alias="OLLAMA_BASE_URL")
    local_detector_model: str = Field("gemma3:1b", alias="LOCAL_DETECTOR_MODEL")
    local_primary_model: str = Field("gemma3:4b", alias="LOCAL_PRIMARY_MODEL")
    local_fallback_model: str = Field("gemma3:12b", alias="LOCAL_FALLBACK_MODEL")
    local_reply_model: str = Field("gemma3:12b", alias="LOCAL_REPLY_MODEL")
    local_urgent_reply_model: str = Field("gemma3:27b", alias="LOCAL_URGENT_REPLY_MODEL")

    # Language detection
    heuristic_scan_chars: int = Field(100, alias="HEURISTIC_SCAN_CHARS")  # Prefix scanned for script ranges
    detection_excerpt_chars: int = Field(100, alias="DETECTION_EXCERPT_CHARS")  # Excerpt sent to the model

    # Confidence gating
    confidence_threshold: float = Field(0.85, alias="CONFIDENCE_THRESHOLD")  # Escalate to fallback below this
    fallback_confidence: float = Field(0.95, alias="FALLBACK_CONFIDENCE")

    # Caching
    cache_max_size: int = Field(1000, alias="CACHE_MAX_SIZE")
    cache_ttl_seconds: int = Field(3600, alias="CACHE_TTL_SECONDS")  # 0 disables expiry
    cache_key_prefix_chars: int = Field(50, alias="CACHE_KEY_PREFIX_CHARS")
    cache_fallback_translations: bool = Field(False, alias="CACHE_FALLBACK_TRANSLATIONS")

    # Safe reply used when generation fails
    crisis_hotline: str = Field("AASRA at 9820466726", alias="CRISIS_HOTLINE")


def get_settings() -> Settings:
    return Settings()

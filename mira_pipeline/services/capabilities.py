"""
External model capabilities: language detection, translation and reply generation.

Two backends share one interface:
- CloudCapability: Gemini `generateContent` REST API
- LocalCapability: Ollama-style `/api/generate` server

The backend is chosen once at startup by `create_capability`; call sites only
ever see `TranslationCapability`.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..errors import CapabilityError
from ..languages import LanguageCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelProfile:
    """Model name plus generation settings for one role."""
    model: str
    max_output_tokens: int
    temperature: float


def extract_text(response: Any, default: str = "") -> str:
    """Pull the generated text out of a model response.

    Handles, in order:
    - objects exposing a callable `text()` accessor (SDK response objects)
    - nested `candidates[0].content.parts[0].text` (dicts or attributes)
    - dicts carrying `response` (Ollama) or `text`
    - raw strings

    Returns `default` when nothing usable is found.
    """
    if response is None:
        return default

    if isinstance(response, str):
        return response.strip() or default

    accessor = getattr(response, "text", None)
    if callable(accessor):
        try:
            value = accessor()
        except Exception as e:
            logger.debug(f"Response text accessor failed: {e}")
            value = None
        if isinstance(value, str) and value.strip():
            return value.strip()

    nested = _candidate_text(response)
    if nested:
        return nested

    if isinstance(response, dict):
        for key in ("response", "text"):
            value = response.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    elif isinstance(accessor, str) and accessor.strip():
        return accessor.strip()

    return default


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _candidate_text(response: Any) -> Optional[str]:
    candidates = _field(response, "candidates")
    if not candidates:
        # SDKs wrap the payload in a `response` attribute
        inner = _field(response, "response")
        if inner is None or isinstance(inner, str):
            return None
        candidates = _field(inner, "candidates")
    try:
        parts = _field(_field(candidates[0], "content"), "parts")
        text = _field(parts[0], "text")
    except (IndexError, KeyError, TypeError):
        return None
    if isinstance(text, str) and text.strip():
        return text.strip()
    return None


class TranslationCapability(ABC):
    """Model-backed detection, translation and reply generation."""

    name = "base"

    def __init__(
        self,
        detector: ModelProfile,
        primary: ModelProfile,
        fallback: ModelProfile,
        reply: ModelProfile,
        urgent_reply: ModelProfile,
    ):
        self.profiles: Dict[str, ModelProfile] = {
            "detector": detector,
            "primary": primary,
            "fallback": fallback,
            "reply": reply,
            "urgent_reply": urgent_reply,
        }

    def model_for(self, role: str) -> str:
        return self.profiles[role].model

    @abstractmethod
    async def _generate(self, prompt: str, profile: ModelProfile) -> Any:
        """Send a prompt to the backend and return its raw response."""

    async def close(self) -> None:
        """Release backend resources."""

    async def _call(self, prompt: str, role: str) -> Any:
        profile = self.profiles[role]
        start_time = time.perf_counter()
        try:
            response = await self._generate(prompt, profile)
        except CapabilityError:
            raise
        except httpx.HTTPStatusError as exc:
            logger.error(f"{self.name} {role} request failed: {exc.response.status_code}")
            raise CapabilityError(f"{self.name} provider error ({exc.response.status_code})") from exc
        except httpx.HTTPError as exc:
            logger.error(f"{self.name} {role} request crashed: {exc!r}")
            raise CapabilityError(f"{self.name} request failed") from exc
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{self.name} {role} ({profile.model}) took {duration_ms:.1f}ms")
        return response

    async def detect_language(self, text: str) -> str:
        codes = ", ".join(LanguageCode.codes())
        prompt = f'Detect language. Reply only with code: {codes}\nText: "{text}"\nLanguage:'
        return extract_text(await self._call(prompt, "detector"))

    async def translate(self, text: str, source_lang: str, target_lang: str, tier: str = "primary") -> str:
        source = _language_name(source_lang)
        target = _language_name(target_lang)
        if tier == "fallback":
            prompt = (
                f"Translate this {source} text to {target}. "
                f"Maintain empathetic tone for Indian mental health context:\n\n"
                f'"{text}"\n\n'
                f"{target} translation:"
            )
            role = "fallback"
        else:
            prompt = (
                f"You are an expert multilingual translator specializing in mental health contexts.\n"
                f"Translate the following {source} text to {target}.\n\n"
                f"Requirements:\n"
                f"- Preserve emotional tone and empathy\n"
                f"- Preserve mental health terminology\n"
                f"- Maintain cultural sensitivity for Indian mental health context\n"
                f"- Keep the same level of formality\n"
                f"- Only output the translation, nothing else\n\n"
                f'{source} text: "{text}"\n\n'
                f"{target} translation:"
            )
            role = "primary"
        return extract_text(await self._call(prompt, role))

    async def generate_reply(self, prompt: str, context: Optional[Dict[str, Any]] = None) -> str:
        role = "urgent_reply" if context and context.get("urgent") else "reply"
        text = extract_text(await self._call(prompt, role))
        if not text:
            raise CapabilityError(f"{self.name} returned no content")
        return text


def _language_name(code: str) -> str:
    lang = LanguageCode.parse(code)
    return lang.display_name if lang else code


class CloudCapability(TranslationCapability):
    """Gemini REST backend."""

    name = "cloud"

    def __init__(self, api_key: str, base_url: str, timeout_s: float, client: Optional[httpx.AsyncClient] = None, **profiles):
        super().__init__(**profiles)
        if not api_key:
            logger.warning("GEMINI_API_KEY is not set; cloud capability calls will fail and degrade")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def _generate(self, prompt: str, profile: ModelProfile) -> Any:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": profile.temperature,
                "maxOutputTokens": profile.max_output_tokens,
                "topP": 0.95,
            },
        }
        response = await self._client.post(
            f"{self.base_url}/models/{profile.model}:generateContent",
            headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
            json=payload,
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise CapabilityError("Cloud provider returned an unexpected response.") from exc

    async def close(self) -> None:
        await self._client.aclose()


class LocalCapability(TranslationCapability):
    """Ollama-style local model server backend."""

    name = "local"

    def __init__(self, base_url: str, timeout_s: float, client: Optional[httpx.AsyncClient] = None, **profiles):
        super().__init__(**profiles)
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def _generate(self, prompt: str, profile: ModelProfile) -> Any:
        payload = {
            "model": profile.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": profile.temperature,
                "num_predict": profile.max_output_tokens,
            },
        }
        response = await self._client.post(f"{self.base_url}/api/generate", json=payload)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise CapabilityError("Local provider returned an unexpected response.") from exc

    async def close(self) -> None:
        await self._client.aclose()


def _profiles(settings: Settings, prefix: str) -> Dict[str, ModelProfile]:
    def model(role: str) -> str:
        return getattr(settings, f"{prefix}_{role}_model")

    return {
        "detector": ModelProfile(model("detector"), max_output_tokens=32, temperature=0.1),
        "primary": ModelProfile(model("primary"), max_output_tokens=512, temperature=0.2),
        "fallback": ModelProfile(model("fallback"), max_output_tokens=512, temperature=0.2),
        "reply": ModelProfile(model("reply"), max_output_tokens=512, temperature=0.85),
        "urgent_reply": ModelProfile(model("urgent_reply"), max_output_tokens=512, temperature=0.7),
    }


def create_capability(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> TranslationCapability:
    """Select the capability backend from configuration."""
    backend = settings.capability_backend.strip().lower()
    if backend == "cloud":
        capability = CloudCapability(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout_s=settings.capability_timeout_s,
            client=client,
            **_profiles(settings, "cloud"),
        )
    elif backend == "local":
        capability = LocalCapability(
            base_url=settings.ollama_base_url,
            timeout_s=settings.capability_timeout_s,
            client=client,
            **_profiles(settings, "local"),
        )
    else:
        raise ValueError(f"Unknown CAPABILITY_BACKEND: {settings.capability_backend!r}")
    logger.info(f"Capability backend: {capability.name} (primary={capability.model_for('primary')})")
    return capability

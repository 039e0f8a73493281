"""
Shared fixtures: a scriptable in-memory model capability.
"""

import pytest
from fastapi.testclient import TestClient

from mira_pipeline.config import Settings
from mira_pipeline.main import create_app
from mira_pipeline.services.capabilities import ModelProfile, TranslationCapability
from mira_pipeline.services.orchestrator import PipelineOrchestrator
from mira_pipeline.services.state import PipelineState


class CapabilityDown(Exception):
    """Simulated unreachable backend."""


class FakeCapability(TranslationCapability):
    """Capability whose behaviour is set per operation.

    Each behaviour is either a value to return, an exception to raise,
    or a callable receiving the call arguments.
    """

    name = "fake"

    def __init__(self, detect="en", primary=None, fallback=None, reply="Take a slow breath with me.", analysis=None):
        profile = lambda model: ModelProfile(model, max_output_tokens=64, temperature=0.0)
        super().__init__(
            detector=profile("fake-detector"),
            primary=profile("fake-primary"),
            fallback=profile("fake-fallback"),
            reply=profile("fake-reply"),
            urgent_reply=profile("fake-urgent"),
        )
        self.detect_behaviour = detect
        self.primary_behaviour = primary if primary is not None else (lambda text, s, t: f"[{t}] {text}")
        self.fallback_behaviour = fallback if fallback is not None else (lambda text, s, t: f"<{t}> {text}")
        self.reply_behaviour = reply
        self.analysis_behaviour = (
            analysis if analysis is not None else '{"intent": "seeking_help", "emotion": "sad", "urgency": "medium"}'
        )
        self.calls = []
        self.closed = False

    async def _generate(self, prompt, profile):
        raise AssertionError("FakeCapability overrides every public operation")

    @staticmethod
    def _resolve(behaviour, *args):
        if isinstance(behaviour, BaseException):
            raise behaviour
        if isinstance(behaviour, type) and issubclass(behaviour, BaseException):
            raise behaviour("capability unavailable")
        if callable(behaviour):
            return behaviour(*args)
        return behaviour

    async def detect_language(self, text):
        self.calls.append(("detect", text))
        return self._resolve(self.detect_behaviour, text)

    async def translate(self, text, source_lang, target_lang, tier="primary"):
        self.calls.append((tier, text, source_lang, target_lang))
        behaviour = self.fallback_behaviour if tier == "fallback" else self.primary_behaviour
        return self._resolve(behaviour, text, source_lang, target_lang)

    async def generate_reply(self, prompt, context=None):
        task = (context or {}).get("task", "reply")
        self.calls.append((task, prompt, context))
        if task == "preprocessing":
            return self._resolve(self.analysis_behaviour, prompt)
        return self._resolve(self.reply_behaviour, prompt)

    async def close(self):
        self.closed = True

    def count(self, kind):
        return sum(1 for call in self.calls if call[0] == kind)


def all_down() -> FakeCapability:
    return FakeCapability(
        detect=CapabilityDown,
        primary=CapabilityDown,
        fallback=CapabilityDown,
        reply=CapabilityDown,
        analysis=CapabilityDown,
    )


@pytest.fixture
def settings():
    return Settings(
        gemini_api_key="test-key",
        cache_max_size=100,
        cache_ttl_seconds=3600,
        _env_file=None,
    )


@pytest.fixture
def capability():
    return FakeCapability()


@pytest.fixture
def state(settings):
    return PipelineState.from_settings(settings)


@pytest.fixture
def orchestrator(settings, capability, state):
    return PipelineOrchestrator.build(settings, capability, state)


@pytest.fixture
def client(settings, capability):
    """Create test client."""
    app = create_app(settings=settings, capability=capability)
    return TestClient(app)

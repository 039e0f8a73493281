"""
Translation and detection endpoint tests.
"""

import pytest
from fastapi.testclient import TestClient

from mira_pipeline.main import create_app

from conftest import CapabilityDown, FakeCapability


def test_translate_endpoint_requires_text(client):
    """Test /api/translate-text requires text parameter."""
    response = client.post("/api/translate-text", json={
        "target_lang": "en"
    })
    assert response.status_code == 422  # Validation error


def test_translate_endpoint_requires_target_lang(client):
    """Test /api/translate-text requires target_lang parameter."""
    response = client.post("/api/translate-text", json={
        "text": "Hello"
    })
    assert response.status_code == 422  # Validation error


def test_translate_endpoint_valid_request(client):
    """Test /api/translate-text with a source language hint."""
    response = client.post("/api/translate-text", json={
        "text": "Hello",
        "target_lang": "hi",
        "source_lang": "en"
    })
    assert response.status_code == 200
    data = response.json()
    assert data["translated_text"] == "[hi] Hello"
    assert data["tier"] == "primary"
    assert data["confidence"] == pytest.approx(0.9)
    assert "detection" not in data


def test_translate_endpoint_detects_source(client):
    """Test /api/translate-text detects the source language when omitted."""
    response = client.post("/api/translate-text", json={
        "text": "ನಮಸ್ಕಾರ",
        "target_lang": "en",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["sourceLanguage"] == "kn"
    assert data["detection"]["source"] == "heuristic"


def test_translate_endpoint_second_call_hits_cache(client):
    payload = {"text": "I feel calm", "source_lang": "en", "target_lang": "ta"}
    first = client.post("/api/translate-text", json=payload).json()
    second = client.post("/api/translate-text", json=payload).json()
    assert first["tier"] == "primary"
    assert second["tier"] == "cache"
    assert second["translated_text"] == first["translated_text"]


def test_translate_endpoint_degrades_instead_of_failing(settings):
    capability = FakeCapability(primary=CapabilityDown, fallback=CapabilityDown)
    client = TestClient(create_app(settings=settings, capability=capability))
    response = client.post("/api/translate-text", json={
        "text": "I can't focus",
        "source_lang": "en",
        "target_lang": "ml",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["tier"] == "error"
    assert data["translated_text"] == "I can't focus"
    assert data["confidence"] == 0.5


def test_detect_language_endpoint(client):
    response = client.post("/api/detect-language", json={"text": "नमस्ते"})
    assert response.status_code == 200
    assert response.json()["language"] == "hi"
    assert response.json()["confidence"] == 0.95

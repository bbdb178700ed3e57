"""
Pytest configuration for Clinical Documentation Service tests
"""

import pytest

from clinidoc.services.encounter_service import EncounterService, InMemoryEncounterStore
from clinidoc.services.transcription_service import DemoTranscriptionService, TranscriptionResult


class FakeTranscriptionService:
    """Returns a fixed transcript and records the audio it was asked for"""

    def __init__(self, result: TranscriptionResult):
        self.result = result
        self.calls = []

    async def transcribe(self, audio_source: str) -> TranscriptionResult:
        self.calls.append(audio_source)
        return self.result


class FailingTranscriptionService:
    async def transcribe(self, audio_source: str) -> TranscriptionResult:
        raise RuntimeError("speech provider offline")


# ============================================================================
# Sample data fixtures
# ============================================================================

@pytest.fixture
def structured_note():
    """Short note with every structural marker"""
    return (
        "Chief complaint: chest pain. Physical examination: lungs clear. "
        "Assessment: costochondritis. Plan: ibuprofen 600mg TID."
    )


@pytest.fixture
def headache_note():
    """Symptoms only, no structural markers"""
    return "Patient reports headache for two days with intermittent dizziness."


@pytest.fixture
def detailed_note():
    """Full-length encounter documentation"""
    return (
        "Chief complaint: productive cough for one week. "
        "History of present illness: cough started after a cold, worse at night, with sputum. "
        "Review of systems positive for fever and fatigue, negative for chest pain. "
        "Physical examination: heart regular rate and rhythm, lungs with scattered wheezing. "
        "Assessment: acute bronchitis, differential includes early pneumonia. "
        "Plan: supportive care, albuterol inhaler as needed, follow up in one week."
    )


@pytest.fixture
def sample_transcription_result():
    return TranscriptionResult(
        text=(
            "Chief complaint: headache. Vital signs stable. "
            "Assessment: tension headache. Plan: acetaminophen as needed."
        ),
        confidence=92,
        duration="3:24",
    )


# ============================================================================
# Service fixtures
# ============================================================================

@pytest.fixture
def fake_transcription(sample_transcription_result):
    return FakeTranscriptionService(sample_transcription_result)


@pytest.fixture
def encounter_service(fake_transcription):
    """Fresh encounter service with an empty in-memory store"""
    return EncounterService(
        store=InMemoryEncounterStore(),
        transcription_service=fake_transcription,
    )


@pytest.fixture
def demo_encounter_service():
    return EncounterService(
        store=InMemoryEncounterStore(),
        transcription_service=DemoTranscriptionService(),
    )


@pytest.fixture
def failing_encounter_service():
    return EncounterService(
        store=InMemoryEncounterStore(),
        transcription_service=FailingTranscriptionService(),
    )


@pytest.fixture
def app_client(encounter_service):
    """FastAPI app wired to the per-test encounter service"""
    from clinidoc.main import app
    from clinidoc.routers.encounters import get_encounter_service

    app.dependency_overrides[get_encounter_service] = lambda: encounter_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def test_client(app_client):
    """Get a TestClient for the FastAPI app"""
    from fastapi.testclient import TestClient
    return TestClient(app_client)

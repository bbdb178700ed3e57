"""
Tests for encounter audio transcription

AssemblyAI SDK calls are replaced with MagicMock.
"""

import pytest
from unittest.mock import MagicMock, patch

from clinidoc.errors import InvalidInputError
from clinidoc.services.transcription_service import (
    DEMO_TRANSCRIPTIONS,
    FALLBACK_TRANSCRIPTION,
    AssemblyAITranscriptionService,
    DemoTranscriptionService,
    TranscriptionResult,
    format_duration,
    get_transcription_service,
)


class TestFormatDuration:
    @pytest.mark.parametrize("seconds,expected", [
        (0, "0:00"),
        (9, "0:09"),
        (204, "3:24"),
        (150.7, "2:30"),
        (None, "0:00"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestDemoTranscription:
    """Tests for the canned demo provider"""

    @pytest.mark.asyncio
    async def test_deterministic_selection(self):
        service = DemoTranscriptionService()

        first = await service.transcribe("visit-42.wav")
        second = await service.transcribe("visit-42.wav")

        assert first == second
        assert first.text in DEMO_TRANSCRIPTIONS
        assert first.confidence == 92
        assert first.duration == "3:24"

    def test_transcription_result_to_dict(self):
        result = TranscriptionResult(text="Patient reports headache", confidence=95, duration="0:42")

        assert result.to_dict() == {"text": "Patient reports headache", "confidence": 95, "duration": "0:42"}


class TestAssemblyAITranscription:
    """Tests for AssemblyAI batch transcription"""

    @pytest.fixture
    def mock_aai(self):
        with patch('clinidoc.services.transcription_service.aai') as mock:
            mock.TranscriptStatus.error = "error"
            yield mock

    @pytest.mark.asyncio
    async def test_successful_transcription(self, mock_aai):
        transcript = MagicMock()
        transcript.status = "completed"
        transcript.text = " Chief complaint: cough. "
        transcript.confidence = 0.914
        transcript.audio_duration = 204
        mock_aai.Transcriber.return_value.transcribe.return_value = transcript

        service = AssemblyAITranscriptionService(api_key="test-api-key")
        result = await service.transcribe("https://example.com/visit.wav")

        assert mock_aai.settings.api_key == "test-api-key"
        mock_aai.Transcriber.return_value.transcribe.assert_called_once_with("https://example.com/visit.wav")
        assert result == TranscriptionResult(text="Chief complaint: cough.", confidence=91, duration="3:24")

    @pytest.mark.asyncio
    async def test_language_code_passed_to_config(self, mock_aai):
        mock_aai.Transcriber.return_value.transcribe.return_value = MagicMock(
            status="completed", text="", confidence=None, audio_duration=0
        )

        service = AssemblyAITranscriptionService(api_key="key", language_code="es-ES")
        result = await service.transcribe("https://example.com/visit.wav")

        assert mock_aai.TranscriptionConfig.call_args.kwargs["language_code"] == "es"
        assert result.confidence == 85

    @pytest.mark.asyncio
    async def test_error_status_falls_back(self, mock_aai):
        transcript = MagicMock()
        transcript.status = "error"
        transcript.error = "Audio file could not be decoded"
        mock_aai.Transcriber.return_value.transcribe.return_value = transcript

        service = AssemblyAITranscriptionService(api_key="key")
        result = await service.transcribe("https://example.com/corrupt.wav")

        assert result == FALLBACK_TRANSCRIPTION

    @pytest.mark.asyncio
    async def test_sdk_exception_falls_back(self, mock_aai):
        mock_aai.Transcriber.return_value.transcribe.side_effect = Exception("Connection failed")

        service = AssemblyAITranscriptionService(api_key="key")
        result = await service.transcribe("https://example.com/visit.wav")

        assert result.confidence == 85
        assert result.duration == "2:30"

    @pytest.mark.asyncio
    async def test_local_path_not_uploaded(self, mock_aai):
        service = AssemblyAITranscriptionService(api_key="key")

        with pytest.raises(InvalidInputError):
            await service.transcribe("/root/.env")

        mock_aai.Transcriber.return_value.transcribe.assert_not_called()


class TestServiceSelection:
    """Tests for provider selection from settings"""

    def test_demo_without_api_key(self):
        with patch('clinidoc.services.transcription_service.settings') as mock_settings:
            mock_settings.demo_transcription = False
            mock_settings.assemblyai_api_key = ""

            assert isinstance(get_transcription_service(), DemoTranscriptionService)

    def test_demo_forced(self):
        with patch('clinidoc.services.transcription_service.settings') as mock_settings:
            mock_settings.demo_transcription = True
            mock_settings.assemblyai_api_key = "configured"

            assert isinstance(get_transcription_service(), DemoTranscriptionService)

    def test_assemblyai_with_api_key(self):
        with patch('clinidoc.services.transcription_service.settings') as mock_settings, \
             patch('clinidoc.services.transcription_service.aai'):
            mock_settings.demo_transcription = False
            mock_settings.assemblyai_api_key = "configured"
            mock_settings.transcription_language_code = "en-US"

            service = get_transcription_service()

            assert isinstance(service, AssemblyAITranscriptionService)
            assert service.language_code == "en-US"

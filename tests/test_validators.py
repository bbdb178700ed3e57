"""
Tests for input sanitization and audio source validation
"""

import pytest

from clinidoc.errors import InvalidInputError
from clinidoc.validators import sanitize_text, validate_audio_url, validate_transcription_text


class TestSanitizeText:
    """Tests for markup removal"""

    def test_script_block_removed(self):
        assert sanitize_text("<script>alert(1)</script>Cough for 3 days") == "Cough for 3 days"

    def test_clinical_wording_untouched(self):
        text = "Prescription refilled after transcription review."

        assert sanitize_text(text) == text

    def test_event_handler_removed(self):
        assert sanitize_text('img onerror="x" fever') == 'img "x" fever'

    def test_empty(self):
        assert sanitize_text(None) == ""

    def test_length_limit(self):
        with pytest.raises(InvalidInputError):
            validate_transcription_text("wheezing " * 5, max_length=10)


class TestValidateAudioUrl:
    """Tests for the audio source allow-list"""

    @pytest.mark.parametrize("source", [
        "https://storage.example.com/visits/12.wav",
        "http://10.0.0.5/recording.mp3",
        "  HTTPS://example.com/a.m4a  ",
    ])
    def test_remote_urls_accepted(self, source):
        assert validate_audio_url(source) == source.strip()

    @pytest.mark.parametrize("source", [
        "/root/.env",
        "../patients/42/visit.wav",
        "visit.wav",
        "C:\\recordings\\visit.wav",
        "file:///etc/passwd",
        "ftp://example.com/visit.wav",
        "https://",
        "",
        None,
    ])
    def test_everything_else_rejected(self, source):
        with pytest.raises(InvalidInputError):
            validate_audio_url(source)

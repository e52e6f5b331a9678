import wave
from unittest.mock import MagicMock

import pytest

from voicesub.asr.whisper import WhisperUtteranceTranscriber, pcm16_to_wav, whisper_language
from voicesub.errors import RecognitionError


def test_transcribe_utterance_returns_stripped_texts(monkeypatch):
    fake_model = MagicMock()

    seg1 = MagicMock(start=0.0, end=1.2, text=" Hello")
    seg2 = MagicMock(start=1.2, end=2.5, text="   ")
    seg3 = MagicMock(start=2.5, end=3.0, text="world. ")
    fake_model.transcribe.return_value = ([seg1, seg2, seg3], MagicMock())

    tr = WhisperUtteranceTranscriber(model_size="base")
    monkeypatch.setattr(tr, "_get_model", lambda: fake_model)

    out = tr.transcribe_utterance(b"\x00\x00" * 1600, sample_rate=16000, channels=1, language="en")
    assert out == ["Hello", "world."]
    _args, kwargs = fake_model.transcribe.call_args
    assert kwargs["language"] == "en"


def test_empty_audio_skips_model(monkeypatch):
    tr = WhisperUtteranceTranscriber()
    monkeypatch.setattr(tr, "_get_model", lambda: (_ for _ in ()).throw(AssertionError("loaded")))
    assert tr.transcribe_utterance(b"", sample_rate=16000, channels=1) == []


def test_whisper_language_from_speech_code():
    assert whisper_language("en-US") == "en"
    assert whisper_language("zh-CN") == "zh"
    assert whisper_language("") is None


def test_decoder_failure_becomes_recognition_error(monkeypatch):
    fake_model = MagicMock()
    fake_model.transcribe.side_effect = RuntimeError("CUDA out of memory")
    tr = WhisperUtteranceTranscriber()
    monkeypatch.setattr(tr, "_get_model", lambda: fake_model)

    with pytest.raises(RecognitionError) as exc_info:
        tr.transcribe_utterance(b"\x00\x00" * 160, sample_rate=16000, channels=1)
    assert exc_info.value.code == "transcription-failed"


def test_audio_is_passed_as_wav():
    buf = pcm16_to_wav(b"\x00\x00" * 160, sample_rate=16000, channels=1)
    with wave.open(buf, "rb") as wf:
        assert wf.getframerate() == 16000
        assert wf.getnframes() == 160

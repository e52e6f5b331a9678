from __future__ import annotations

import io
import logging
import threading
import wave
from dataclasses import dataclass
from typing import List, Optional

from voicesub.errors import RecognitionError

logger = logging.getLogger(__name__)


def whisper_language(speech_code: str) -> Optional[str]:
    """'en-US' -> 'en'; an empty code lets faster-whisper detect the language."""
    base = (speech_code or "").split("-")[0].strip().lower()
    return base or None


def pcm16_to_wav(pcm16: bytes, *, sample_rate: int, channels: int) -> io.BytesIO:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm16)
    buf.seek(0)
    return buf


@dataclass(frozen=True)
class WhisperSettings:
    model_size: str = "tiny"
    device: str = "cpu"
    compute_type: str = "int8"
    beam_size: int = 1


class WhisperUtteranceTranscriber:
    """
    Transcribe finished utterances with faster-whisper.

    The model is loaded on first use. Audio is handed over as an in-memory
    WAV; each non-empty whisper segment becomes one line of text. Decoder
    failures are raised as RecognitionError("transcription-failed").
    """

    def __init__(self, *, model_size: str = "tiny", settings: Optional[WhisperSettings] = None) -> None:
        self.settings = settings or WhisperSettings(model_size=model_size)
        self._model = None
        self._model_lock = threading.Lock()

    def _get_model(self):
        with self._model_lock:
            if self._model is None:
                from faster_whisper import WhisperModel

                s = self.settings
                logger.info("whisper_model_loading", extra={"model_size": s.model_size, "device": s.device})
                self._model = WhisperModel(s.model_size, device=s.device, compute_type=s.compute_type)
            return self._model

    def transcribe_utterance(
        self,
        pcm16: bytes,
        *,
        sample_rate: int,
        channels: int,
        language: Optional[str] = None,
    ) -> List[str]:
        if not pcm16:
            return []

        model = self._get_model()
        audio = pcm16_to_wav(pcm16, sample_rate=sample_rate, channels=channels)
        try:
            segments, _info = model.transcribe(
                audio,
                language=language,
                beam_size=self.settings.beam_size,
                vad_filter=False,
                condition_on_previous_text=False,
            )
            # segments is lazy; decoding happens while iterating
            texts = [(s.text or "").strip() for s in segments]
        except (RuntimeError, OSError, ValueError) as e:
            raise RecognitionError("transcription-failed", str(e)) from e
        return [t for t in texts if t]

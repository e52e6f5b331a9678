from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass
from typing import Any, Optional

from voicesub.asr.base import RecognitionSource
from voicesub.asr.mic_source import MicRecognitionSource
from voicesub.asr.whisper import WhisperUtteranceTranscriber
from voicesub.audio.mic import MicrophoneCapture, MicSettings
from voicesub.audio.vad import EnergyVAD
from voicesub.errors import UnsupportedEnvironment
from voicesub.nlp.dictionary import WordLookup
from voicesub.nlp.translator.factory import get_translator
from voicesub.nlp.translator.retrying import RetryingTranslator

logger = logging.getLogger(__name__)

_RECOGNITION_MODULES = ("faster_whisper", "sounddevice")


@dataclass(frozen=True)
class JobServices:
    translator: RetryingTranslator
    source: Optional[RecognitionSource]
    lookup: WordLookup


def recognition_available() -> bool:
    return all(importlib.util.find_spec(name) is not None for name in _RECOGNITION_MODULES)


def build_recognition_source(args: Any) -> RecognitionSource:
    """Microphone + faster-whisper source; UnsupportedEnvironment when those packages are missing."""
    if not recognition_available():
        raise UnsupportedEnvironment(f"missing packages: {', '.join(_RECOGNITION_MODULES)}")
    mic = MicrophoneCapture(
        MicSettings(
            chunk_seconds=float(args.chunk_sec),
            sample_rate=int(args.sr),
            channels=int(args.channels),
            device=args.device,
        )
    )
    return MicRecognitionSource(
        mic=mic,
        vad=EnergyVAD(rms_threshold=float(args.rms_th)),
        transcriber=WhisperUtteranceTranscriber(model_size=str(args.model)),
        silence_chunks=int(args.silence_chunks),
        min_utter_sec=float(args.min_utter_sec),
        max_utter_sec=None if args.max_utter_sec is None else float(args.max_utter_sec),
    )


def build_translator(args: Any) -> RetryingTranslator:
    backend = get_translator(str(args.translator), api_url=str(args.api_url))
    return RetryingTranslator(
        backend,
        max_attempts=int(args.max_attempts),
        base_delay_sec=float(args.base_delay_sec),
    )


def build_job_services(args: Any) -> JobServices:
    translator = build_translator(args)
    source: Optional[RecognitionSource]
    try:
        source = build_recognition_source(args)
    except UnsupportedEnvironment as e:
        logger.warning("recognition_unavailable", extra={"detail": str(e)})
        source = None
    return JobServices(
        translator=translator,
        source=source,
        lookup=WordLookup(translator, dictionary_url=str(args.dictionary_url)),
    )

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source_lang: str = "auto"
    target_lang: str = "en"

@dataclass(frozen=True)
class TranslationMatch:
    segment: str
    translation: str
    source: Optional[str] = None
    quality: Optional[float] = None

@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str
    detected_lang: Optional[str] = None
    matches: Tuple[TranslationMatch, ...] = ()

@dataclass(frozen=True)
class RetryAttempt:
    attempt_number: int
    backoff_delay: float


@dataclass
class Segment:
    """
    One subtitle line. Only translated_text changes after creation, and only
    once: from "" to the translation.
    """
    id: str
    start_time: float
    end_time: float
    original_text: str
    translated_text: str = ""

    def set_translation(self, text: str) -> None:
        if self.translated_text:
            raise ValueError(f"segment {self.id} is already translated")
        self.translated_text = text


@dataclass
class TranscriptionState:
    full_text: str = ""
    interim_text: str = ""
    segments: list[Segment] = field(default_factory=list)


# Recognition events, pushed by a RecognitionSource in arrival order.

@dataclass(frozen=True)
class Interim:
    text: str

@dataclass(frozen=True)
class Final:
    text: str

@dataclass(frozen=True)
class RecognitionErrorEvent:
    code: str
    message: str = ""

@dataclass(frozen=True)
class Ended:
    pass

RecognitionEvent = Union[Interim, Final, RecognitionErrorEvent, Ended]


@dataclass(frozen=True)
class AudioChunk:
    """
    Raw PCM16 audio chunk captured from a live source (e.g., microphone).
    pcm16: little-endian signed 16-bit PCM bytes (interleaved if channels > 1).
    """
    pcm16: bytes
    sample_rate: int
    channels: int
    start_time: float  # seconds since stream start
    duration: float    # seconds

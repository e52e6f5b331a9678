from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Protocol

from voicesub.audio.mic import MicError
from voicesub.audio.vad import EnergyVAD
from voicesub.contracts import AudioChunk, Ended, Final, RecognitionErrorEvent
from voicesub.errors import RecognitionError

from .base import EventSink, RecognitionSource
from .whisper import whisper_language

logger = logging.getLogger(__name__)


class ChunkSource(Protocol):
    def chunks(self, stop_event: Optional[threading.Event] = None) -> Iterator[AudioChunk]:
        ...


class UtteranceTranscriber(Protocol):
    def transcribe_utterance(
        self, pcm16: bytes, *, sample_rate: int, channels: int, language: Optional[str] = None
    ) -> List[str]:
        ...


@dataclass(frozen=True)
class Utterance:
    pcm16: bytes
    sample_rate: int
    channels: int
    t0: float
    duration: float


class UtteranceDetector:
    """
    Group audio chunks into utterances by energy VAD.

    An utterance ends after `silence_chunks` consecutive non-speech chunks, or
    as soon as it reaches `max_utter_sec` of speech. Utterances shorter than
    `min_utter_sec` are dropped.
    """

    def __init__(
        self,
        vad: EnergyVAD,
        *,
        silence_chunks: int = 2,
        min_utter_sec: float = 0.6,
        max_utter_sec: Optional[float] = None,
    ) -> None:
        if silence_chunks <= 0:
            raise ValueError("silence_chunks must be > 0")
        if min_utter_sec < 0:
            raise ValueError("min_utter_sec must be >= 0")
        if max_utter_sec is not None and max_utter_sec <= 0:
            raise ValueError("max_utter_sec must be > 0 when set")
        self.vad = vad
        self.silence_chunks = int(silence_chunks)
        self.min_utter_sec = float(min_utter_sec)
        self.max_utter_sec = float(max_utter_sec) if max_utter_sec is not None else None
        self._parts: list[AudioChunk] = []
        self._trailing_silence = 0

    def push(self, chunk: AudioChunk) -> Optional[Utterance]:
        if self.vad.is_speech(chunk):
            self._parts.append(chunk)
            self._trailing_silence = 0
            if self.max_utter_sec is not None and self._speech_sec() >= self.max_utter_sec:
                return self.flush()
            return None
        if not self._parts:
            return None
        self._trailing_silence += 1
        if self._trailing_silence >= self.silence_chunks:
            return self.flush()
        return None

    def flush(self) -> Optional[Utterance]:
        parts = self._parts
        self._parts = []
        self._trailing_silence = 0
        if not parts:
            return None
        first = parts[0]
        utter = Utterance(
            pcm16=b"".join(p.pcm16 for p in parts),
            sample_rate=first.sample_rate,
            channels=first.channels,
            t0=first.start_time,
            duration=sum(p.duration for p in parts),
        )
        if utter.duration < self.min_utter_sec:
            logger.debug("utterance_skipped_short", extra={"t0": utter.t0, "duration": utter.duration})
            return None
        return utter

    def _speech_sec(self) -> float:
        return sum(p.duration for p in self._parts)


class MicRecognitionSource(RecognitionSource):
    """
    One-shot recognition over a live microphone: VAD utterances are
    transcribed with faster-whisper on a worker thread and emitted as Final
    events. The session ends (Ended) when stopped or when the stream runs out.
    """

    def __init__(
        self,
        *,
        mic: ChunkSource,
        vad: EnergyVAD,
        transcriber: UtteranceTranscriber,
        silence_chunks: int = 2,
        min_utter_sec: float = 0.6,
        max_utter_sec: Optional[float] = 6.0,
    ) -> None:
        self.mic = mic
        self.vad = vad
        self.transcriber = transcriber
        self.silence_chunks = silence_chunks
        self.min_utter_sec = min_utter_sec
        self.max_utter_sec = max_utter_sec
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        # last started worker, kept for join()
        self._worker: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._aborted = False

    def start(self, language: str, emit: EventSink) -> None:
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("recognition is already running")
            self._stop_event = threading.Event()
            self._aborted = False
            thread = threading.Thread(
                target=self._run,
                args=(whisper_language(language), emit, self._stop_event),
                name="voicesub-recognition-worker",
                daemon=True,
            )
            self._thread = thread
            self._worker = thread
        thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def abort(self) -> None:
        self._aborted = True
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._worker
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _transcribe(self, utter: Utterance, language: Optional[str], emit: EventSink) -> None:
        texts = self.transcriber.transcribe_utterance(
            utter.pcm16,
            sample_rate=utter.sample_rate,
            channels=utter.channels,
            language=language,
        )
        logger.debug(
            "utterance_transcribed",
            extra={"t0": utter.t0, "duration": utter.duration, "segments": len(texts)},
        )
        for text in texts:
            emit(Final(text=text))

    def _chunks(self, stop_event: threading.Event) -> Iterable[AudioChunk]:
        for chunk in self.mic.chunks(stop_event):
            if stop_event.is_set():
                return
            yield chunk

    def _run(self, language: Optional[str], emit: EventSink, stop_event: threading.Event) -> None:
        detector = UtteranceDetector(
            self.vad,
            silence_chunks=self.silence_chunks,
            min_utter_sec=self.min_utter_sec,
            max_utter_sec=self.max_utter_sec,
        )
        try:
            for chunk in self._chunks(stop_event):
                utter = detector.push(chunk)
                if utter is not None:
                    self._transcribe(utter, language, emit)
            if self._aborted:
                emit(RecognitionErrorEvent(code="aborted"))
            else:
                utter = detector.flush()
                if utter is not None:
                    self._transcribe(utter, language, emit)
        except MicError as e:
            logger.warning("recognition_audio_capture_failed", extra={"error": str(e)})
            emit(RecognitionErrorEvent(code="audio-capture", message=str(e)))
        except RecognitionError as e:
            logger.warning("recognition_transcription_failed", extra={"code": e.code, "detail": e.message})
            emit(RecognitionErrorEvent(code=e.code, message=e.message))
        finally:
            with self._lock:
                if self._thread is threading.current_thread():
                    self._thread = None
            emit(Ended())

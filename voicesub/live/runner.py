from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from voicesub.app.state import JobState, JobStateMachine
from voicesub.asr.base import RecognitionSource
from voicesub.contracts import Segment
from voicesub.errors import InvalidMedia, RecognitionError, TranslationFailure
from voicesub.languages import speech_code_for
from voicesub.live.session import TranscriptionSession
from voicesub.media import MAX_MEDIA_BYTES, MediaClock, MediaInfo, load_media
from voicesub.nlp.segmenter import TranscriptSegmenter
from voicesub.nlp.translator.retrying import RetryingTranslator

NO_SPEECH_MESSAGE = "No speech was detected in the media. Play it with the sound on and try again."
TRANSLATION_FAILED_MESSAGE = "Translation failed. Check the network connection and try again."
UNSUPPORTED_MESSAGE = "Speech recognition is not available in this environment."
JOB_FAILED_MESSAGE = "The job stopped because of an unexpected error. See the log for details."

FULL_TEXT_CAP = 500
SEGMENT_CAP = 20
EXTRACT_PROGRESS_MAX = 80.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobSnapshot:
    state: JobState
    progress: float
    original_text: str
    interim_text: str
    translated_text: str
    segments: Tuple[Segment, ...]
    detected_lang: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def display_text(self) -> str:
        if self.interim_text:
            return f"{self.original_text}[{self.interim_text}]"
        return self.original_text


class JobProgress:
    """0-100 progress that never goes backwards within a job."""

    def __init__(self, listener: Optional[Callable[[float], None]] = None) -> None:
        self.value = 0.0
        self._listener = listener

    def reset(self) -> None:
        self.value = 0.0
        if self._listener is not None:
            self._listener(self.value)

    def advance(self, value: float) -> None:
        value = min(100.0, max(0.0, float(value)))
        if value <= self.value:
            return
        self.value = value
        if self._listener is not None:
            self._listener(value)


def extraction_progress(clock: MediaClock) -> float:
    duration = clock.duration()
    if not duration or duration <= 0:
        return 0.0
    return min(EXTRACT_PROGRESS_MAX, EXTRACT_PROGRESS_MAX * clock.position() / duration)


def _log_transition(previous: JobState, current: JobState) -> None:
    logger.info("job_state", extra={"from_state": previous.value, "to_state": current.value})


class TranslationJobRunner:
    """
    Two-phase job: transcribe the media to its end, then translate.

    Phase one plays the media and feeds recognition events to the segmenter
    (progress 0-80). Phase two translates the first FULL_TEXT_CAP characters
    of the transcript once, then the first SEGMENT_CAP segments one by one,
    in order (progress 80-100). A segment whose translation fails keeps its
    original text; a failed full-text translation fails the job.

    cancel() is cooperative: it pauses the media and stops recognition, but
    an in-flight translation call is left to finish before the job settles.
    """

    def __init__(
        self,
        *,
        translator: RetryingTranslator,
        source: Optional[RecognitionSource],
        state: Optional[JobStateMachine] = None,
        full_text_cap: int = FULL_TEXT_CAP,
        segment_cap: int = SEGMENT_CAP,
        max_media_bytes: int = MAX_MEDIA_BYTES,
        poll_sec: float = 0.05,
        on_progress: Optional[Callable[[float], None]] = None,
        on_segment: Optional[Callable[[Segment], None]] = None,
    ) -> None:
        self.translator = translator
        self.source = source
        self.state = state or JobStateMachine()
        self.state.listeners.append(_log_transition)
        self.full_text_cap = int(full_text_cap)
        self.segment_cap = int(segment_cap)
        self.max_media_bytes = int(max_media_bytes)
        self.poll_sec = float(poll_sec)
        self.on_segment = on_segment
        self.progress = JobProgress(on_progress)
        self.media: Optional[MediaInfo] = None

        self._segmenter = TranscriptSegmenter()
        self._original_text: Optional[str] = None
        self._translated_text = ""
        self._detected_lang: Optional[str] = None
        self._error_code: Optional[str] = None
        self._cancel = threading.Event()
        self._clock: Optional[MediaClock] = None
        self._run_lock = threading.Lock()

    # -- media -------------------------------------------------------------

    def load(self, path: str | Path) -> MediaInfo:
        self.state.set_loading()
        self._reset()
        self.progress.reset()
        try:
            info = load_media(path, max_bytes=self.max_media_bytes)
        except InvalidMedia as e:
            self.media = None
            self._error_code = "invalid-media"
            self.state.set_error(str(e))
            logger.warning("media_rejected", extra={"path": str(path), "error": str(e)})
            raise
        self.media = info
        self.state.set_ready()
        logger.info("media_loaded", extra={"media": info.name, "size_bytes": info.size_bytes})
        return info

    def attach_live(self, name: str = "microphone") -> MediaInfo:
        """Use a live stream with no file behind it as the job's media."""
        self.state.set_loading()
        self._reset()
        self.progress.reset()
        self.media = MediaInfo(name=name)
        self.state.set_ready()
        return self.media

    def clear(self) -> None:
        self.cancel()
        self.media = None
        if self._run_lock.locked():
            # the running job settles into idle once it sees the cancel
            return
        self._reset()
        self.progress.reset()
        if self.state.state != JobState.IDLE:
            self.state.set_idle()

    # -- job ---------------------------------------------------------------

    def cancel(self) -> None:
        self._cancel.set()
        clock = self._clock
        if clock is not None:
            clock.pause()

    def run(self, media: MediaClock, source_lang: str, target_lang: str) -> JobSnapshot:
        if not self._run_lock.acquire(blocking=False):
            raise RuntimeError("a job is already running")
        try:
            self._cancel.clear()
            self._clock = media
            try:
                self._run(media, source_lang, target_lang)
            except Exception as e:
                logger.exception("job_crash")
                media.pause()
                if self.state.is_active:
                    self._fail("job-failed", f"{JOB_FAILED_MESSAGE} ({type(e).__name__}: {e})")
        finally:
            self._clock = None
            self._run_lock.release()
        snap = self.snapshot()
        logger.info(
            "job_settled",
            extra={"state": snap.state.value, "segments": len(snap.segments), "progress": snap.progress},
        )
        return snap

    def snapshot(self) -> JobSnapshot:
        original = self._original_text if self._original_text is not None else self._segmenter.full_text
        return JobSnapshot(
            state=self.state.state,
            progress=self.progress.value,
            original_text=original,
            interim_text=self._segmenter.interim_text,
            translated_text=self._translated_text,
            segments=tuple(dataclasses.replace(s) for s in self._segmenter.current_segments()),
            detected_lang=self._detected_lang,
            error=self.state.last_error,
            error_code=self._error_code,
        )

    def _reset(self) -> None:
        self._segmenter = TranscriptSegmenter()
        self._original_text = None
        self._translated_text = ""
        self._detected_lang = None
        self._error_code = None

    def _fail(self, code: str, message: str) -> None:
        self._error_code = code
        self.state.set_error(message)
        logger.warning("job_failed", extra={"code": code, "error": message})

    def _settle_cancelled(self) -> None:
        if self.media is not None:
            self.state.set_ready()
        else:
            self.state.set_idle()
        logger.info("job_cancelled", extra={"segments": len(self._segmenter.current_segments())})

    def _run(self, media: MediaClock, source_lang: str, target_lang: str) -> None:
        self.state.set_extracting()
        self._reset()
        self.progress.reset()
        logger.info("job_start", extra={"source_lang": source_lang, "target_lang": target_lang})

        if not self._transcribe(media, source_lang):
            return
        if self._cancel.is_set():
            self._settle_cancelled()
            return

        full_text = self._segmenter.full_text
        if not full_text.strip():
            self._original_text = NO_SPEECH_MESSAGE
            self.progress.advance(100.0)
            self.state.set_done()
            return

        self.state.set_translating()
        self.progress.advance(EXTRACT_PROGRESS_MAX)
        self._translate(source_lang, target_lang)

    def _transcribe(self, media: MediaClock, source_lang: str) -> bool:
        session = TranscriptionSession(self.source, segmenter=self._segmenter, clock=media)
        if not session.supported:
            self._fail("unsupported", UNSUPPORTED_MESSAGE)
            return False

        before = 0
        try:
            # recognition restarts only while the clock is playing
            media.play_from_start()
            session.start(speech_code_for(source_lang))
            while not self._cancel.is_set() and not media.ended():
                if session.pump(timeout=self.poll_sec) is not None:
                    self.progress.advance(extraction_progress(media))
                    before = self._publish_new_segments(before)
        except RecognitionError as e:
            media.pause()
            session.abort()
            self._fail(e.code, f"Speech recognition error: {e.code}")
            return False
        except Exception:
            media.pause()
            session.abort()
            raise

        session.stop()
        session.drain()
        self._publish_new_segments(before)
        if not self._cancel.is_set():
            self.progress.advance(extraction_progress(media))
        return True

    def _publish_new_segments(self, before: int) -> int:
        segments = self._segmenter.current_segments()
        if self.on_segment is not None:
            for seg in segments[before:]:
                self.on_segment(dataclasses.replace(seg))
        return len(segments)

    def _translate(self, source_lang: str, target_lang: str) -> None:
        full_text = self._segmenter.full_text.strip()[: self.full_text_cap]
        try:
            result = self.translator.translate_result(full_text, source_lang, target_lang)
        except TranslationFailure as e:
            self._fail("translation-failed", TRANSLATION_FAILED_MESSAGE)
            logger.warning("full_text_translation_failed", extra={"attempts": e.attempts})
            return
        self._translated_text = result.translated_text
        self._detected_lang = result.detected_lang
        if self._cancel.is_set():
            self._settle_cancelled()
            return

        batch = self._segmenter.current_segments()[: self.segment_cap]
        for i, seg in enumerate(batch, start=1):
            if self._cancel.is_set():
                self._settle_cancelled()
                return
            try:
                text = self.translator.translate(seg.original_text, source_lang, target_lang)
            except TranslationFailure:
                logger.warning("segment_translation_fallback", extra={"segment_id": seg.id})
                text = ""
            seg.set_translation(text or seg.original_text)
            self.progress.advance(EXTRACT_PROGRESS_MAX + (100.0 - EXTRACT_PROGRESS_MAX) * i / len(batch))

        self.progress.advance(100.0)
        self.state.set_done()

from __future__ import annotations

import logging
import queue
from enum import Enum
from typing import Callable, Optional

from voicesub.asr.base import RecognitionSource
from voicesub.asr.continuous import ContinuousRecognition
from voicesub.contracts import Ended, Final, Interim, RecognitionErrorEvent, RecognitionEvent
from voicesub.errors import RECOVERABLE_RECOGNITION_CODES, RecognitionError
from voicesub.media import MediaClock
from voicesub.nlp.segmenter import TranscriptSegmenter

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    ERROR = "error"
    UNSUPPORTED = "unsupported"


class TranscriptionSession:
    """
    Own one recognition source for the length of a job.

    The source pushes events onto `events` from its own thread; pump()/drain()
    consume them on the caller's thread, in arrival order, and feed the
    segmenter. While the media is playing, a source that ends is restarted
    transparently.
    """

    def __init__(
        self,
        source: Optional[RecognitionSource],
        *,
        segmenter: TranscriptSegmenter,
        clock: MediaClock,
        keep_going: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.segmenter = segmenter
        self.clock = clock
        self.events: "queue.Queue[RecognitionEvent]" = queue.Queue()
        self.last_error: Optional[RecognitionError] = None
        if source is None:
            self._recognition: Optional[ContinuousRecognition] = None
            self.status = SessionStatus.UNSUPPORTED
        else:
            self._recognition = ContinuousRecognition(source, keep_going=keep_going or clock.is_playing)
            self.status = SessionStatus.IDLE

    @property
    def supported(self) -> bool:
        return self.status != SessionStatus.UNSUPPORTED

    def start(self, language_code: str) -> None:
        if self._recognition is None:
            logger.info("recognition_unsupported_start_ignored")
            return
        if self.status == SessionStatus.LISTENING:
            return
        try:
            self._recognition.start(language_code, self.events.put)
        except RecognitionError as e:
            self._fail(e)
            raise
        except (RuntimeError, OSError) as e:
            err = RecognitionError("start-failed", str(e))
            self._fail(err)
            raise err from e
        self.status = SessionStatus.LISTENING
        logger.info("recognition_started", extra={"language": language_code})

    def stop(self) -> None:
        if self._recognition is None or self.status != SessionStatus.LISTENING:
            return
        self._recognition.stop()
        self.status = SessionStatus.IDLE
        logger.info("recognition_stopped")

    def abort(self) -> None:
        if self._recognition is None or self.status != SessionStatus.LISTENING:
            return
        self._recognition.abort()
        self.status = SessionStatus.IDLE

    def pump(self, timeout: float = 0.0) -> Optional[RecognitionEvent]:
        """Handle at most one queued event; None when nothing arrived in time."""
        try:
            if timeout > 0:
                event = self.events.get(timeout=timeout)
            else:
                event = self.events.get_nowait()
        except queue.Empty:
            return None
        self.handle(event)
        return event

    def drain(self) -> int:
        """Handle everything already queued. Errors here are logged, not raised."""
        handled = 0
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return handled
            try:
                self.handle(event)
            except RecognitionError as e:
                logger.warning("recognition_error_after_stop", extra={"code": e.code})
            handled += 1

    def handle(self, event: RecognitionEvent) -> None:
        if isinstance(event, Interim):
            self.segmenter.on_interim(event.text)
        elif isinstance(event, Final):
            seg = self.segmenter.on_final(event.text, self.clock.position())
            if seg is not None:
                logger.debug(
                    "segment_finalized",
                    extra={"segment_id": seg.id, "t0": seg.start_time, "t1": seg.end_time},
                )
        elif isinstance(event, RecognitionErrorEvent):
            if event.code in RECOVERABLE_RECOGNITION_CODES:
                logger.info("recognition_error_ignored", extra={"code": event.code})
                return
            err = RecognitionError(event.code, event.message)
            if self._recognition is not None and self.status == SessionStatus.LISTENING:
                self._recognition.abort()
            self._fail(err)
            raise err
        elif isinstance(event, Ended):
            if self.status == SessionStatus.LISTENING:
                self.status = SessionStatus.IDLE
            logger.info("recognition_ended")

    def _fail(self, err: RecognitionError) -> None:
        self.last_error = err
        self.status = SessionStatus.ERROR
        logger.warning("recognition_failed", extra={"code": err.code, "detail": err.message})

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from voicesub.contracts import Ended, RecognitionErrorEvent, RecognitionEvent

from .base import EventSink, RecognitionSource

logger = logging.getLogger(__name__)


class ContinuousRecognition(RecognitionSource):
    """
    Emulate one continuous session over a one-shot source: when the inner
    session ends while `keep_going()` is true, it is started again and the
    Ended event is not forwarded. A failed restart is reported as a
    "restart-failed" error event.
    """

    def __init__(
        self,
        inner: RecognitionSource,
        *,
        keep_going: Callable[[], bool],
        max_restarts: Optional[int] = None,
    ) -> None:
        self.inner = inner
        self.keep_going = keep_going
        self.max_restarts = max_restarts
        self.restarts = 0
        self._language = ""
        self._emit: Optional[EventSink] = None
        self._active = False
        self._lock = threading.Lock()

    def start(self, language: str, emit: EventSink) -> None:
        with self._lock:
            self._language = language
            self._emit = emit
            self._active = True
            self.restarts = 0
        self.inner.start(language, self._on_event)

    def stop(self) -> None:
        with self._lock:
            self._active = False
        self.inner.stop()

    def abort(self) -> None:
        with self._lock:
            self._active = False
        self.inner.abort()

    def _should_restart(self) -> bool:
        with self._lock:
            if not self._active:
                return False
            if self.max_restarts is not None and self.restarts >= self.max_restarts:
                return False
        return bool(self.keep_going())

    def _on_event(self, event: RecognitionEvent) -> None:
        emit = self._emit
        if emit is None:
            return
        if isinstance(event, Ended) and self._should_restart():
            try:
                self.inner.start(self._language, self._on_event)
            except (RuntimeError, OSError) as e:
                logger.warning("recognition_restart_failed", extra={"error": str(e)})
                emit(RecognitionErrorEvent(code="restart-failed", message=str(e)))
                return
            self.restarts += 1
            logger.info("recognition_restarted", extra={"restarts": self.restarts})
            return
        emit(event)

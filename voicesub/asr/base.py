from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable
from voicesub.contracts import RecognitionEvent

EventSink = Callable[[RecognitionEvent], None]

class RecognitionSource(ABC):
    """
    One-shot recognition session. After start(), events are pushed to `emit`
    in arrival order; the session finishes with Ended (or an error event).
    start() may be called again once a session has ended.
    """
    @abstractmethod
    def start(self, language: str, emit: EventSink) -> None: ...

    @abstractmethod
    def stop(self) -> None:
        """Stop listening; pending results are still delivered before Ended."""

    @abstractmethod
    def abort(self) -> None:
        """Stop listening and drop pending results."""

from __future__ import annotations

from typing import List, Optional

from voicesub.asr.base import EventSink, RecognitionSource
from voicesub.asr.continuous import ContinuousRecognition
from voicesub.contracts import Ended, Final, RecognitionErrorEvent, RecognitionEvent


class OneShotSource(RecognitionSource):
    def __init__(self, fail_on_start: int = 0) -> None:
        self.starts: List[str] = []
        self.emit: Optional[EventSink] = None
        self.fail_on_start = fail_on_start
        self.stopped = False
        self.aborted = False

    def start(self, language: str, emit: EventSink) -> None:
        if self.fail_on_start and len(self.starts) + 1 == self.fail_on_start:
            self.starts.append(language)
            raise RuntimeError("device busy")
        self.starts.append(language)
        self.emit = emit

    def stop(self) -> None:
        self.stopped = True

    def abort(self) -> None:
        self.aborted = True


def _collect():
    out: List[RecognitionEvent] = []
    return out, out.append


def test_ended_while_playing_restarts_with_same_language() -> None:
    inner = OneShotSource()
    out, emit = _collect()
    rec = ContinuousRecognition(inner, keep_going=lambda: True)

    rec.start("uz-UZ", emit)
    assert inner.emit is not None
    inner.emit(Final("salom"))
    inner.emit(Ended())

    assert inner.starts == ["uz-UZ", "uz-UZ"]
    assert out == [Final("salom")]
    assert rec.restarts == 1


def test_ended_after_playback_stops_is_forwarded() -> None:
    playing = {"on": True}
    inner = OneShotSource()
    out, emit = _collect()
    rec = ContinuousRecognition(inner, keep_going=lambda: playing["on"])

    rec.start("en-US", emit)
    playing["on"] = False
    assert inner.emit is not None
    inner.emit(Ended())

    assert inner.starts == ["en-US"]
    assert out == [Ended()]


def test_stop_prevents_restart() -> None:
    inner = OneShotSource()
    out, emit = _collect()
    rec = ContinuousRecognition(inner, keep_going=lambda: True)

    rec.start("en-US", emit)
    rec.stop()
    assert inner.emit is not None
    inner.emit(Ended())

    assert inner.stopped is True
    assert inner.starts == ["en-US"]
    assert out == [Ended()]


def test_abort_is_passed_through() -> None:
    inner = OneShotSource()
    rec = ContinuousRecognition(inner, keep_going=lambda: True)
    rec.start("en-US", lambda _e: None)
    rec.abort()
    assert inner.aborted is True


def test_failed_restart_becomes_error_event() -> None:
    inner = OneShotSource(fail_on_start=2)
    out, emit = _collect()
    rec = ContinuousRecognition(inner, keep_going=lambda: True)

    rec.start("en-US", emit)
    assert inner.emit is not None
    inner.emit(Ended())

    assert len(out) == 1
    assert isinstance(out[0], RecognitionErrorEvent)
    assert out[0].code == "restart-failed"


def test_restart_limit() -> None:
    inner = OneShotSource()
    out, emit = _collect()
    rec = ContinuousRecognition(inner, keep_going=lambda: True, max_restarts=1)

    rec.start("en-US", emit)
    assert inner.emit is not None
    inner.emit(Ended())
    inner.emit(Ended())

    assert len(inner.starts) == 2
    assert out == [Ended()]

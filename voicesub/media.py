from __future__ import annotations

import mimetypes
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol

from voicesub.errors import InvalidMedia

MAX_MEDIA_BYTES = 100 * 1024 * 1024


class MediaClock(Protocol):
    def position(self) -> float:
        ...

    def duration(self) -> Optional[float]:
        ...

    def play_from_start(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def is_playing(self) -> bool:
        ...

    def ended(self) -> bool:
        ...


@dataclass(frozen=True)
class MediaInfo:
    name: str
    path: Optional[Path] = None
    size_bytes: int = 0
    mime_type: Optional[str] = None


def load_media(path: str | Path, *, max_bytes: int = MAX_MEDIA_BYTES) -> MediaInfo:
    p = Path(path)
    mime_type, _ = mimetypes.guess_type(p.name)
    if not mime_type or not mime_type.startswith("video/"):
        raise InvalidMedia(f"Only video files are supported: {p.name}")
    if not p.is_file():
        raise InvalidMedia(f"Media file not found: {p}")
    size = p.stat().st_size
    if size > max_bytes:
        raise InvalidMedia(
            f"Media file is {size / (1024 * 1024):.1f}MB; the limit is {max_bytes // (1024 * 1024)}MB"
        )
    return MediaInfo(name=p.name, path=p, size_bytes=size, mime_type=mime_type)


def format_timestamp(seconds: float) -> str:
    """Render seconds as MM:SS for subtitle listings."""
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


class PlaybackClock:
    """
    Wall-clock media clock for audio played outside this process.

    With a known duration, playback ends when the position reaches it.
    finish() ends playback early (e.g. the user stops a live recording).
    """

    def __init__(self, duration: Optional[float] = None, *, now: Callable[[], float] = time.monotonic) -> None:
        if duration is not None and duration <= 0:
            raise ValueError("duration must be > 0 when set")
        self._duration = float(duration) if duration is not None else None
        self._now = now
        self._lock = threading.Lock()
        self._offset = 0.0
        self._started_at: Optional[float] = None
        self._finished = False

    def _position_locked(self) -> float:
        pos = self._offset
        if self._started_at is not None:
            pos += self._now() - self._started_at
        if self._duration is not None:
            pos = min(pos, self._duration)
        return pos

    def position(self) -> float:
        with self._lock:
            return self._position_locked()

    def duration(self) -> Optional[float]:
        return self._duration

    def play_from_start(self) -> None:
        with self._lock:
            self._offset = 0.0
            self._finished = False
            self._started_at = self._now()

    def pause(self) -> None:
        with self._lock:
            self._offset = self._position_locked()
            self._started_at = None

    def finish(self) -> None:
        with self._lock:
            self._offset = self._position_locked()
            self._started_at = None
            self._finished = True

    def ended(self) -> bool:
        with self._lock:
            if self._finished:
                return True
            return self._duration is not None and self._position_locked() >= self._duration

    def is_playing(self) -> bool:
        with self._lock:
            return self._started_at is not None and not self._finished and not (
                self._duration is not None and self._position_locked() >= self._duration
            )

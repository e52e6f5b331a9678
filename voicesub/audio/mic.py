from __future__ import annotations

import contextlib
import threading
from dataclasses import dataclass
from typing import Iterator, Optional

from voicesub.contracts import AudioChunk

_INSTALL_HINT = "sounddevice is not installed. Install with: python -m pip install sounddevice"
_DEVICE_HINT = "Try --list-devices and select a device id with --device."


class MicError(RuntimeError):
    pass


def _sounddevice():
    try:
        import sounddevice as sd
    except ImportError as e:
        raise MicError(_INSTALL_HINT) from e
    return sd


@dataclass(frozen=True)
class MicSettings:
    chunk_seconds: float = 0.5
    sample_rate: int = 16000
    channels: int = 1
    device: Optional[int] = None

    def __post_init__(self) -> None:
        if self.chunk_seconds <= 0:
            raise ValueError("chunk_seconds must be > 0")
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if self.channels not in (1, 2):
            raise ValueError("channels must be 1 or 2")

    @property
    def frames_per_chunk(self) -> int:
        return max(1, int(round(self.chunk_seconds * self.sample_rate)))


class MicrophoneCapture:
    """
    Microphone capture through `sounddevice` (PortAudio).

    chunks() opens the input stream, yields fixed-size PCM16 chunks stamped
    with their offset from the start of capture, and closes the stream when
    the stop event is set or the consumer stops iterating. PortAudio
    failures surface as MicError.
    """

    def __init__(self, settings: Optional[MicSettings] = None) -> None:
        self.settings = settings or MicSettings()

    @staticmethod
    def list_devices() -> str:
        return str(_sounddevice().query_devices())

    @contextlib.contextmanager
    def _open_stream(self):
        sd = _sounddevice()
        s = self.settings
        try:
            stream = sd.RawInputStream(
                samplerate=s.sample_rate,
                channels=s.channels,
                dtype="int16",
                device=s.device,
                blocksize=0,
            )
        except (sd.PortAudioError, ValueError) as e:
            raise MicError(f"Failed to open microphone stream: {e}. {_DEVICE_HINT}") from e

        with stream:
            yield sd, stream

    def chunks(self, stop_event: Optional[threading.Event] = None) -> Iterator[AudioChunk]:
        s = self.settings
        frames = s.frames_per_chunk
        duration = frames / s.sample_rate
        offset = 0

        with self._open_stream() as (sd, stream):
            while stop_event is None or not stop_event.is_set():
                try:
                    # overflow only means PortAudio dropped frames
                    data, _overflowed = stream.read(frames)
                except sd.PortAudioError as e:
                    raise MicError(f"Microphone read failed: {e}") from e
                yield AudioChunk(
                    pcm16=bytes(data),
                    sample_rate=s.sample_rate,
                    channels=s.channels,
                    start_time=offset / s.sample_rate,
                    duration=duration,
                )
                offset += frames

# voicesub/nlp/segmenter.py
from __future__ import annotations

import itertools
from typing import Callable, List, Optional

from voicesub.contracts import Segment, TranscriptionState


def _sequential_ids(prefix: str = "seg") -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


class TranscriptSegmenter:
    """
    Turn final recognition results into chained subtitle segments.

      - every final result becomes its own segment, in arrival order
      - a segment starts where the previous one ended (0.0 for the first)
        and ends at the media clock reading when it was finalized
      - interim text is a single buffer, replaced on each update and cleared
        by the next final result
    """
    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._next_id = id_factory or _sequential_ids()
        self._state = TranscriptionState()

    @property
    def full_text(self) -> str:
        return self._state.full_text

    @property
    def interim_text(self) -> str:
        return self._state.interim_text

    def on_interim(self, text: str) -> None:
        self._state.interim_text = text or ""

    def on_final(self, text: str, clock_time: float) -> Optional[Segment]:
        self._state.interim_text = ""
        cleaned = (text or "").strip()
        if not cleaned:
            return None

        segments = self._state.segments
        start = segments[-1].end_time if segments else 0.0
        # Timestamps are best-effort; a clock reading behind the chain gives a zero-length segment.
        end = max(start, float(clock_time))
        seg = Segment(id=self._next_id(), start_time=start, end_time=end, original_text=cleaned)
        segments.append(seg)
        self._state.full_text += cleaned + " "
        return seg

    def current_segments(self) -> List[Segment]:
        return list(self._state.segments)

    def snapshot(self) -> TranscriptionState:
        return TranscriptionState(
            full_text=self._state.full_text,
            interim_text=self._state.interim_text,
            segments=self.current_segments(),
        )

    def reset(self) -> None:
        self._state = TranscriptionState()

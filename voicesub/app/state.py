from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from voicesub.errors import InvalidTransition


class JobState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EXTRACTING = "extracting"
    TRANSLATING = "translating"
    DONE = "done"
    ERROR = "error"


_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.IDLE: frozenset({JobState.LOADING}),
    JobState.LOADING: frozenset({JobState.READY, JobState.ERROR, JobState.IDLE}),
    JobState.READY: frozenset({JobState.EXTRACTING, JobState.LOADING, JobState.IDLE}),
    JobState.EXTRACTING: frozenset(
        {JobState.TRANSLATING, JobState.DONE, JobState.ERROR, JobState.READY, JobState.IDLE}
    ),
    JobState.TRANSLATING: frozenset({JobState.DONE, JobState.ERROR, JobState.READY, JobState.IDLE}),
    JobState.DONE: frozenset({JobState.EXTRACTING, JobState.LOADING, JobState.READY, JobState.IDLE}),
    JobState.ERROR: frozenset({JobState.EXTRACTING, JobState.LOADING, JobState.READY, JobState.IDLE}),
}

ACTIVE_STATES = frozenset({JobState.LOADING, JobState.EXTRACTING, JobState.TRANSLATING})

StateListener = Callable[[JobState, JobState], None]


@dataclass
class JobStateMachine:
    state: JobState = JobState.IDLE
    last_error: str | None = None
    listeners: List[StateListener] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def can_transition(self, target: JobState) -> bool:
        return target in _TRANSITIONS[self.state]

    def transition(self, target: JobState, *, error: Optional[str] = None) -> None:
        with self._lock:
            previous = self.state
            if target not in _TRANSITIONS[previous]:
                raise InvalidTransition(f"{previous.value} -> {target.value}")
            self.state = target
            self.last_error = error if target == JobState.ERROR else None
        for listener in list(self.listeners):
            listener(previous, target)

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    def set_loading(self) -> None:
        self.transition(JobState.LOADING)

    def set_ready(self) -> None:
        self.transition(JobState.READY)

    def set_extracting(self) -> None:
        self.transition(JobState.EXTRACTING)

    def set_translating(self) -> None:
        self.transition(JobState.TRANSLATING)

    def set_done(self) -> None:
        self.transition(JobState.DONE)

    def set_idle(self) -> None:
        self.transition(JobState.IDLE)

    def set_error(self, detail: str) -> None:
        self.transition(JobState.ERROR, error=detail)

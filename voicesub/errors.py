from __future__ import annotations

from typing import Optional

RECOVERABLE_RECOGNITION_CODES = frozenset({"no-speech", "aborted"})


class VoiceSubError(RuntimeError):
    pass


class UnsupportedEnvironment(VoiceSubError):
    """No recognition source can be constructed in this environment."""


class RecognitionError(VoiceSubError):
    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}" if message else code)

    @property
    def recoverable(self) -> bool:
        return self.code in RECOVERABLE_RECOGNITION_CODES


class TranslationBackendError(VoiceSubError):
    """A single translation attempt failed (transport, status or payload)."""


class TranslationFailure(VoiceSubError):
    def __init__(self, message: str, *, attempts: int, last_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class InvalidMedia(VoiceSubError):
    pass


class InvalidTransition(VoiceSubError):
    pass

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Callable, List, Optional

from voicesub.contracts import RetryAttempt, TranslationRequest, TranslationResult
from voicesub.errors import TranslationBackendError, TranslationFailure

from .base import Translator

MAX_ATTEMPTS = 3
BASE_DELAY_SEC = 1.0

logger = logging.getLogger(__name__)


def backoff_schedule(max_attempts: int = MAX_ATTEMPTS, base_delay_sec: float = BASE_DELAY_SEC) -> List[RetryAttempt]:
    return [
        RetryAttempt(attempt_number=n, backoff_delay=base_delay_sec * (n + 1))
        for n in range(max_attempts)
    ]


class RetryingTranslator:
    """
    Wrap a single-attempt backend with bounded retries.

    Attempts run strictly one after another; a failed attempt n waits
    base_delay * (n + 1) before the next one, and the last failure raises
    TranslationFailure without waiting. Nothing is shared between calls, so
    one instance may serve several callers at once.
    """

    def __init__(
        self,
        backend: Translator,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay_sec: float = BASE_DELAY_SEC,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        if base_delay_sec < 0:
            raise ValueError("base_delay_sec must be >= 0")
        self.backend = backend
        self.max_attempts = int(max_attempts)
        self.base_delay_sec = float(base_delay_sec)
        self._sleep = sleep

    @property
    def name(self) -> str:
        return self.backend.name

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        return self.translate_result(text, source_lang, target_lang).translated_text

    def translate_result(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        if not (text or "").strip():
            return TranslationResult(source_text=text or "", translated_text="", provider=self.name)

        req = TranslationRequest(text=text, source_lang=source_lang, target_lang=target_lang)
        schedule = backoff_schedule(self.max_attempts, self.base_delay_sec)
        last_error: Optional[TranslationBackendError] = None

        for attempt in schedule:
            try:
                result = self.backend.translate(req)
            except TranslationBackendError as e:
                last_error = e
                is_last = attempt.attempt_number == self.max_attempts - 1
                logger.warning(
                    "translate_attempt_failed",
                    extra={
                        "provider": self.name,
                        "attempt": attempt.attempt_number + 1,
                        "max_attempts": self.max_attempts,
                        "backoff_sec": 0.0 if is_last else attempt.backoff_delay,
                        "error": str(e),
                    },
                )
                if not is_last:
                    self._sleep(attempt.backoff_delay)
                continue
            return self._with_detected_lang(result, source_lang)

        raise TranslationFailure(
            f"translation failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            last_error=last_error,
        ) from last_error

    def _with_detected_lang(self, result: TranslationResult, source_lang: str) -> TranslationResult:
        if source_lang != "auto" or result.detected_lang or not result.matches:
            return result
        detected = result.matches[0].source
        if not detected:
            return result
        logger.info("translate_detected_language", extra={"provider": self.name, "detected_lang": detected})
        return dataclasses.replace(result, detected_lang=detected)

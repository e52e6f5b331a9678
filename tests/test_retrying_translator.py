from __future__ import annotations

import pytest

from voicesub.contracts import TranslationMatch, TranslationRequest, TranslationResult
from voicesub.errors import TranslationBackendError, TranslationFailure
from voicesub.nlp.translator.base import Translator
from voicesub.nlp.translator.retrying import RetryingTranslator, backoff_schedule


class FlakyBackend(Translator):
    def __init__(self, failures: int, matches=()) -> None:
        self.failures = failures
        self.matches = tuple(matches)
        self.calls: list[TranslationRequest] = []

    @property
    def name(self) -> str:
        return "flaky"

    def translate(self, req: TranslationRequest) -> TranslationResult:
        self.calls.append(req)
        if len(self.calls) <= self.failures:
            raise TranslationBackendError(f"failure #{len(self.calls)}")
        return TranslationResult(
            source_text=req.text,
            translated_text=f"ok:{req.text}",
            provider=self.name,
            matches=self.matches,
        )


def test_always_failing_backend_gets_three_calls_and_two_waits() -> None:
    backend = FlakyBackend(failures=99)
    sleeps: list[float] = []
    tr = RetryingTranslator(backend, sleep=sleeps.append)

    with pytest.raises(TranslationFailure) as exc_info:
        tr.translate("hello", "en", "uz")

    assert len(backend.calls) == 3
    assert sleeps == [1.0, 2.0]
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_error, TranslationBackendError)


def test_recovers_after_transient_failure() -> None:
    backend = FlakyBackend(failures=1)
    sleeps: list[float] = []
    tr = RetryingTranslator(backend, sleep=sleeps.append)

    assert tr.translate("hello", "en", "uz") == "ok:hello"
    assert len(backend.calls) == 2
    assert sleeps == [1.0]


def test_empty_text_short_circuits() -> None:
    backend = FlakyBackend(failures=0)
    tr = RetryingTranslator(backend, sleep=lambda _s: pytest.fail("must not sleep"))

    assert tr.translate("", "en", "uz") == ""
    assert tr.translate("   ", "en", "uz") == ""
    assert backend.calls == []


def test_request_carries_languages() -> None:
    backend = FlakyBackend(failures=0)
    tr = RetryingTranslator(backend, sleep=lambda _s: None)

    tr.translate("hello", "auto", "uz")

    req = backend.calls[0]
    assert (req.text, req.source_lang, req.target_lang) == ("hello", "auto", "uz")


def test_detected_language_only_for_auto_source() -> None:
    matches = [TranslationMatch(segment="hello", translation="salom", source="en-GB", quality=74.0)]
    tr = RetryingTranslator(FlakyBackend(failures=0, matches=matches), sleep=lambda _s: None)

    assert tr.translate_result("hello", "auto", "uz").detected_lang == "en-GB"
    assert tr.translate_result("hello", "en", "uz").detected_lang is None


def test_missing_match_metadata_is_not_an_error() -> None:
    tr = RetryingTranslator(FlakyBackend(failures=0), sleep=lambda _s: None)
    result = tr.translate_result("hello", "auto", "uz")
    assert result.translated_text == "ok:hello"
    assert result.detected_lang is None


def test_backoff_schedule_is_linear_in_attempt_number() -> None:
    schedule = backoff_schedule(3, 1.0)
    assert [(a.attempt_number, a.backoff_delay) for a in schedule] == [(0, 1.0), (1, 2.0), (2, 3.0)]


def test_invalid_settings_rejected() -> None:
    with pytest.raises(ValueError):
        RetryingTranslator(FlakyBackend(failures=0), max_attempts=0)
    with pytest.raises(ValueError):
        RetryingTranslator(FlakyBackend(failures=0), base_delay_sec=-1.0)

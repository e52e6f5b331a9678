from __future__ import annotations

import httpx
import pytest

from voicesub.contracts import TranslationRequest
from voicesub.errors import TranslationBackendError, TranslationFailure
from voicesub.nlp.translator.mymemory import MyMemoryTranslator, language_pair
from voicesub.nlp.translator.retrying import RetryingTranslator


def _ok_payload(text: str = "salom", **extra) -> dict:
    payload = {"responseStatus": 200, "responseData": {"translatedText": text}}
    payload.update(extra)
    return payload


def _recording_transport(responses):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = responses[min(len(seen), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        # fresh copy; the client closes each response it receives
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    return httpx.MockTransport(handler), seen


def test_language_pair_encoding() -> None:
    assert language_pair("auto", "uz") == "auto|uz"
    assert language_pair("en", "uz") == "en|uz"


@pytest.mark.parametrize(("source", "expected"), [("auto", "auto|uz"), ("en", "en|uz")])
def test_request_sends_query_and_langpair(source: str, expected: str) -> None:
    transport, seen = _recording_transport([httpx.Response(200, json=_ok_payload())])
    tr = RetryingTranslator(MyMemoryTranslator(transport=transport), sleep=lambda _s: None)

    assert tr.translate("hello", source, "uz") == "salom"

    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert seen[0].url.params["q"] == "hello"
    assert seen[0].url.params["langpair"] == expected


def test_empty_text_makes_no_request() -> None:
    transport, seen = _recording_transport([httpx.Response(200, json=_ok_payload())])
    tr = RetryingTranslator(MyMemoryTranslator(transport=transport), sleep=lambda _s: None)

    assert tr.translate("", "en", "uz") == ""
    assert seen == []


def test_missing_response_status_is_success() -> None:
    transport, _seen = _recording_transport(
        [httpx.Response(200, json={"responseData": {"translatedText": "privet"}})]
    )
    result = MyMemoryTranslator(transport=transport).translate(TranslationRequest("hi", "en", "ru"))
    assert result.translated_text == "privet"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"responseStatus": 403, "responseData": {"translatedText": "x"}}),
        httpx.Response(200, json={"responseStatus": "429", "responseData": {"translatedText": "x"}}),
        httpx.Response(500, text="server error"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"responseStatus": 200, "responseData": {}}),
        httpx.Response(200, json=["unexpected"]),
    ],
)
def test_bad_responses_raise_backend_error(response: httpx.Response) -> None:
    transport, _seen = _recording_transport([response])
    with pytest.raises(TranslationBackendError):
        MyMemoryTranslator(transport=transport).translate(TranslationRequest("hi", "en", "uz"))


def test_transport_error_is_retried_then_succeeds() -> None:
    request = httpx.Request("GET", "https://api.mymemory.translated.net/get")
    transport, seen = _recording_transport(
        [httpx.ConnectError("offline", request=request), httpx.Response(200, json=_ok_payload("ok"))]
    )
    sleeps: list[float] = []
    tr = RetryingTranslator(MyMemoryTranslator(transport=transport), sleep=sleeps.append)

    assert tr.translate("hello", "en", "uz") == "ok"
    assert len(seen) == 2
    assert sleeps == [1.0]


def test_always_failing_endpoint_exhausts_retries() -> None:
    transport, seen = _recording_transport([httpx.Response(503, text="busy")])
    sleeps: list[float] = []
    tr = RetryingTranslator(MyMemoryTranslator(transport=transport), sleep=sleeps.append)

    with pytest.raises(TranslationFailure):
        tr.translate("hello", "en", "uz")
    assert len(seen) == 3
    assert sleeps == [1.0, 2.0]


def test_matches_are_parsed_and_source_detected() -> None:
    payload = _ok_payload(
        "salom",
        matches=[
            {"segment": "hello", "translation": "salom", "source": "en-GB", "quality": "74"},
            {"segment": "hello", "translation": "assalomu alaykum", "source": "en-US", "quality": 70},
        ],
    )
    transport, _seen = _recording_transport([httpx.Response(200, json=payload)])
    tr = RetryingTranslator(MyMemoryTranslator(transport=transport), sleep=lambda _s: None)

    result = tr.translate_result("hello", "auto", "uz")

    assert result.provider == "mymemory"
    assert [m.translation for m in result.matches] == ["salom", "assalomu alaykum"]
    assert result.matches[0].quality == 74.0
    assert result.detected_lang == "en-GB"

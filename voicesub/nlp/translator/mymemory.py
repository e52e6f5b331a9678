from __future__ import annotations

from typing import Any, Optional

import httpx

from voicesub.contracts import TranslationMatch, TranslationRequest, TranslationResult
from voicesub.errors import TranslationBackendError

from .base import Translator

DEFAULT_API_URL = "https://api.mymemory.translated.net/get"


def language_pair(source_lang: str, target_lang: str) -> str:
    if source_lang == "auto":
        return f"auto|{target_lang}"
    return f"{source_lang}|{target_lang}"


def _parse_matches(raw: Any) -> tuple[TranslationMatch, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[TranslationMatch] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        quality = item.get("quality")
        try:
            quality_value = float(quality) if quality is not None else None
        except (TypeError, ValueError):
            quality_value = None
        source = item.get("source")
        out.append(
            TranslationMatch(
                segment=str(item.get("segment") or ""),
                translation=str(item.get("translation") or ""),
                source=str(source) if source else None,
                quality=quality_value,
            )
        )
    return tuple(out)


def parse_response(req: TranslationRequest, payload: Any, provider: str = "mymemory") -> TranslationResult:
    if not isinstance(payload, dict):
        raise TranslationBackendError("MyMemory response is not a JSON object")

    # A missing responseStatus counts as success.
    status = payload.get("responseStatus")
    if status is not None and str(status) != "200":
        detail = payload.get("responseDetails") or ""
        raise TranslationBackendError(f"MyMemory API error {status}: {str(detail)[:200]}")

    data = payload.get("responseData")
    translated = data.get("translatedText") if isinstance(data, dict) else None
    if not isinstance(translated, str):
        raise TranslationBackendError("MyMemory response missing responseData.translatedText")

    return TranslationResult(
        source_text=req.text,
        translated_text=translated,
        provider=provider,
        matches=_parse_matches(payload.get("matches")),
    )


class MyMemoryTranslator(Translator):
    """
    MyMemory-compatible HTTP backend: GET ?q=<text>&langpair=<src>|<tgt>.
    A client is opened per call so concurrent calls share nothing.
    """

    def __init__(
        self,
        *,
        api_url: str = DEFAULT_API_URL,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_url = api_url
        self._transport = transport

    @property
    def name(self) -> str:
        return "mymemory"

    def translate(self, req: TranslationRequest) -> TranslationResult:
        params = {"q": req.text, "langpair": language_pair(req.source_lang, req.target_lang)}
        try:
            with httpx.Client(transport=self._transport) as client:
                response = client.get(self.api_url, params=params)
        except httpx.HTTPError as e:
            raise TranslationBackendError(f"MyMemory request failed: {e}") from e

        if not response.is_success:
            raise TranslationBackendError(
                f"MyMemory HTTP error ({response.status_code}): {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise TranslationBackendError("MyMemory response is not valid JSON") from e
        return parse_response(req, payload, provider=self.name)

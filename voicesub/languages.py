from __future__ import annotations

DEFAULT_SPEECH_CODE = "en-US"

_SPEECH_CODES: dict[str, str] = {
    "uz": "uz-UZ",
    "ru": "ru-RU",
    "en": "en-US",
    "tr": "tr-TR",
    "de": "de-DE",
    "fr": "fr-FR",
    "es": "es-ES",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "zh": "zh-CN",
    "ar": "ar-SA",
}


def speech_code_for(code: str) -> str:
    """
    Recognition locale for a translation language code.

    Unknown codes fall back to "<code>-<CODE>" (it -> it-IT). This is an
    approximation and is wrong where the usual country differs from the
    language code (e.g. "uk" would give "uk-UK", not "uk-UA").
    """
    code = (code or "").strip().lower()
    if not code or code == "auto":
        return DEFAULT_SPEECH_CODE
    return _SPEECH_CODES.get(code) or f"{code}-{code.upper()}"

from __future__ import annotations

_RECOGNITION_MESSAGES: dict[str, str] = {
    "not-allowed": "Microphone permission was denied. Allow microphone access and try again.",
    "service-not-allowed": "The speech recognition service is not allowed here.",
    "audio-capture": "No microphone could be opened. Check the input device selection.",
    "network": "Speech recognition needs a network connection.",
    "language-not-supported": "The selected language is not supported for speech recognition.",
    "start-failed": "Speech recognition could not be started.",
    "restart-failed": "Speech recognition stopped and could not be restarted.",
    "transcription-failed": "The speech model failed to transcribe the audio.",
    "unsupported": "Speech recognition is not available. Install faster-whisper and sounddevice.",
    "translation-failed": "Translation failed. Check the network connection and try again.",
    "invalid-media": "Only video files up to the size limit are supported.",
    "job-failed": "The job stopped because of an unexpected error. See the log for details.",
}


def message_for_error_code(code: str | None) -> str:
    if not code:
        return "Unknown error."
    return _RECOGNITION_MESSAGES.get(code, f"Speech recognition error: {code}")


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown runtime error."
    out = next(
        (ln for ln in reversed(lines) if not ln.startswith(("File ", "^", "Traceback "))),
        lines[-1],
    )
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    if "config file not found" in s:
        return "Configured JSON file is missing. Update the config path or restore the file."
    if "microphone" in s or "sounddevice" in s:
        return "Microphone init failed. Check input device selection and app mic permissions."
    if "translation failed" in s or "mymemory" in s:
        return "The translation service is unreachable or rejected the request. Retry later."
    return "Check logs for full traceback."
